"""集成测试共享 fixture"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from missionctl.core.config import MissionControlConfig
from missionctl.core.reconciler import SessionReconciler
from missionctl.core.store import create_store_group
from missionctl.gateway.services.activity_hub import ActivityHub
from missionctl.gateway.services.automation_service import AutomationService
from missionctl.gateway.services.memory_log import MemoryLog
from missionctl.gateway.services.notifier import Notifier
from missionctl.gateway.services.session_source import HttpSessionSource


class SessionFeed:
    """会话来源 MockTransport：返回当前 sessions 列表"""

    def __init__(self) -> None:
        self.sessions: list[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=self.sessions)


@pytest_asyncio.fixture
async def session_feed() -> SessionFeed:
    return SessionFeed()


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, session_feed: SessionFeed):
    """集成测试用 FastAPI app（完整中间件栈，不启动轮询）"""
    os.environ["MISSIONCTL_DB_PATH"] = str(tmp_path / "test.db")
    os.environ["MISSIONCTL_MEMORY_DIR"] = str(tmp_path / "memory")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from missionctl.gateway.main import create_app

    app = create_app()

    config = MissionControlConfig(loops_enabled=False)
    store_group = await create_store_group(str(tmp_path / "test.db"))
    memory_log = MemoryLog(tmp_path / "memory", config.memory_timezone)
    session_source = HttpSessionSource(
        "http://sessions.test/api/sessions",
        timeout_s=1.0,
        transport=httpx.MockTransport(session_feed.handler),
    )

    app.state.config = config
    app.state.store_group = store_group
    app.state.activity_hub = ActivityHub()
    app.state.memory_log = memory_log
    app.state.session_source = session_source
    app.state.automation_service = AutomationService(
        store_group,
        config,
        notifier=Notifier(""),
        memory_log=memory_log,
    )
    app.state.reconciler = SessionReconciler(store_group, config, source=session_source)
    app.state.periodic_tasks = []

    yield app

    await app.state.automation_service.wait_for_side_effects()
    await store_group.close()
    os.environ.pop("MISSIONCTL_DB_PATH", None)
    os.environ.pop("MISSIONCTL_MEMORY_DIR", None)
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
