"""枚举定义

包含 TaskStatus 状态机、TaskPriority、EventType、StationStatus、SessionStatus 枚举，
以及 VALID_TRANSITIONS 合法流转映射。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机"""

    BACKLOG = "backlog"
    # 与 backlog 等价的排队状态，仅展示上区分
    RECURRING = "recurring"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"


# 合法状态流转；任意状态 -> DONE 由 validate_transition 单独放行
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.BACKLOG: {TaskStatus.IN_PROGRESS, TaskStatus.RECURRING},
    TaskStatus.RECURRING: {TaskStatus.IN_PROGRESS, TaskStatus.BACKLOG},
    TaskStatus.IN_PROGRESS: {TaskStatus.REVIEW},
    # review -> backlog 即驳回，rejection_count + 1
    TaskStatus.REVIEW: {TaskStatus.DONE, TaskStatus.BACKLOG},
    TaskStatus.DONE: set(),
}


class TaskPriority(StrEnum):
    """任务优先级"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class EventType(StrEnum):
    """活动事件类型"""

    TASK_START = "task_start"
    TASK_END = "task_end"
    SPAWN = "spawn"
    MESSAGE = "message"
    APPROVAL = "approval"
    STATUS_CHANGE = "status_change"
    SYSTEM = "system"


class StationStatus(StrEnum):
    """办公室工位状态

    对账器只会写 WORKING / IDLE，OFFLINE 仅由独立信号（心跳/手动）写入。
    """

    WORKING = "working"
    IDLE = "idle"
    OFFLINE = "offline"


class SessionStatus(StrEnum):
    """外部会话快照状态"""

    ACTIVE = "active"
    IDLE = "idle"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    if from_status == to_status:
        return False
    if to_status == TaskStatus.DONE:
        return True
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed


def is_rejection_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """review -> backlog 视为驳回"""
    return from_status == TaskStatus.REVIEW and to_status == TaskStatus.BACKLOG
