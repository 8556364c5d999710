"""Mission Control Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .agent import AssigneeClass, KnownAgent, UnknownAssignee
from .cursor import Cursor
from .enums import (
    VALID_TRANSITIONS,
    EventType,
    SessionStatus,
    StationStatus,
    TaskPriority,
    TaskStatus,
    is_rejection_transition,
    validate_transition,
)
from .event import Event, EventCreate, EventFilter
from .office import OfficeStation, ReconcileResult, SessionSnapshot, StationUpsert
from .task import ReviewResolution, Task, TaskCreate, TaskUpdate

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "EventType",
    "StationStatus",
    "SessionStatus",
    # 状态机
    "VALID_TRANSITIONS",
    "validate_transition",
    "is_rejection_transition",
    # Task
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "ReviewResolution",
    # Event
    "Event",
    "EventCreate",
    "EventFilter",
    # Cursor
    "Cursor",
    # Office
    "OfficeStation",
    "StationUpsert",
    "SessionSnapshot",
    "ReconcileResult",
    # 负责人分类
    "AssigneeClass",
    "KnownAgent",
    "UnknownAssignee",
]
