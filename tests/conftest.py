"""共享测试配置 -- 临时 SQLite Store 组 + 数据构造 fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from missionctl.core.config import MissionControlConfig
from missionctl.core.models import EventCreate, EventType, TaskCreate, TaskStatus
from missionctl.core.store import StoreGroup, create_store_group, transaction


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """已初始化的临时数据库 Store 组"""
    group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    yield group
    await group.close()


@pytest.fixture
def config() -> MissionControlConfig:
    """默认运行时配置（不读环境变量）"""
    return MissionControlConfig()


@pytest.fixture
def t0() -> datetime:
    """固定的测试时间"""
    return datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def add_event(store_group: StoreGroup):
    """写入一条事件并返回其 id"""

    async def _add(
        agent_id: str,
        event_type: EventType = EventType.TASK_END,
        title: str = "done",
        agent_name: str | None = None,
    ) -> int:
        async with transaction(store_group):
            return await store_group.event_store.append_event(
                EventCreate(
                    agent_id=agent_id,
                    agent_name=agent_name or agent_id,
                    event_type=event_type,
                    title=title,
                )
            )

    return _add


@pytest.fixture
def add_task(store_group: StoreGroup):
    """直接以指定状态创建任务并返回其 id"""

    async def _add(
        title: str,
        status: TaskStatus = TaskStatus.BACKLOG,
        assignee: str = "me",
        now: datetime | None = None,
    ) -> int:
        async with transaction(store_group):
            return await store_group.task_store.create_task(
                TaskCreate(title=title, status=status, assignee=assignee),
                now=now,
            )

    return _add
