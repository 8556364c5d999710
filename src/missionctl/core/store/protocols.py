"""Store Protocol 接口定义

定义 EventStore、CursorStore、TaskStore、OfficeStatusStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from datetime import datetime
from typing import Protocol

from ..models.cursor import Cursor
from ..models.enums import StationStatus
from ..models.event import Event, EventCreate, EventFilter
from ..models.office import OfficeStation, StationUpsert
from ..models.task import Task, TaskCreate


class EventStore(Protocol):
    """Event 存储接口

    事件表 append-only：只允许插入，不允许更新或删除。
    """

    async def append_event(self, data: EventCreate, now: datetime | None = None) -> int:
        """追加事件（append-only）"""
        ...

    async def get_event(self, event_id: int) -> Event | None:
        """根据 id 查询单条事件"""
        ...

    async def list_events(
        self,
        agent_id: str | None = None,
        limit: int | None = None,
        before_id: int | None = None,
    ) -> list[Event]:
        """按 id 倒序分页查询"""
        ...

    async def get_events_after(
        self,
        after_id: int,
        agent_id: str | None = None,
        limit: int | None = None,
    ) -> list[Event]:
        """查询指定 id 之后的增量事件"""
        ...

    async def get_latest_matching(
        self,
        after_id: int,
        event_filter: EventFilter,
    ) -> Event | None:
        """查询游标之后满足过滤条件的最新事件"""
        ...


class CursorStore(Protocol):
    """Cursor 存储接口"""

    async def get_cursor(self, key: str) -> int:
        """读取游标值，不存在时为 0"""
        ...

    async def compare_and_set(
        self,
        key: str,
        expected: int,
        new_value: int,
        now: datetime | None = None,
    ) -> bool:
        """条件推进游标"""
        ...

    async def list_cursors(self) -> list[Cursor]:
        """列出所有游标"""
        ...


class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, data: TaskCreate, now: datetime | None = None) -> int:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: int) -> Task | None:
        """根据 id 查询任务"""
        ...

    async def find_by_title(self, title_match: str) -> Task | None:
        """按标题子串查找任务"""
        ...

    async def list_tasks(self, status: str | None = None) -> list[Task]:
        """查询任务列表"""
        ...

    async def update_task(self, task_id: int, fields: dict, now: datetime | None = None) -> bool:
        """部分更新任务"""
        ...

    async def resolve_reviews(self, rejected: bool, now: datetime | None = None) -> list[Task]:
        """批量结算 review 任务"""
        ...

    async def archive_done(self, now: datetime | None = None) -> int:
        """归档 done 任务"""
        ...


class OfficeStatusStore(Protocol):
    """OfficeStation 存储接口"""

    async def get_station(self, agent_id: str) -> OfficeStation | None:
        """根据 agent_id 查询工位"""
        ...

    async def list_stations(self) -> list[OfficeStation]:
        """查询所有工位"""
        ...

    async def upsert_station(self, data: StationUpsert, now: datetime | None = None) -> None:
        """插入或合并更新工位"""
        ...

    async def set_idle_if_working(self, agent_id: str, now: datetime | None = None) -> bool:
        """条件写入 idle"""
        ...

    async def set_working_if_status(
        self,
        agent_id: str,
        expected: StationStatus,
        now: datetime | None = None,
    ) -> bool:
        """条件写入 working"""
        ...

    async def insert_working(
        self,
        agent_id: str,
        agent_name: str,
        now: datetime | None = None,
    ) -> bool:
        """插入 working 行"""
        ...
