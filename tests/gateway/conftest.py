"""gateway 测试配置 -- 手动装配 app.state 的 FastAPI app + httpx AsyncClient

会话来源与通知都走 httpx.MockTransport，响应由 fake_gateway 控制。
"""

import json
import os
from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from missionctl.core.reconciler import SessionReconciler
from missionctl.gateway.routes import activity, automation, health, office, stream, tasks
from missionctl.gateway.services.activity_hub import ActivityHub
from missionctl.gateway.services.automation_service import AutomationService
from missionctl.gateway.services.memory_log import MemoryLog
from missionctl.gateway.services.notifier import Notifier
from missionctl.gateway.services.session_source import HttpSessionSource


class FakeGateway:
    """会话来源 + 通知 webhook 的 MockTransport 处理器"""

    def __init__(self) -> None:
        self.sessions: list[dict] = []
        self.session_status = 200
        self.session_error: Exception | None = None
        self.notifications: list[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/notify":
            self.notifications.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})
        if self.session_error is not None:
            raise self.session_error
        return httpx.Response(self.session_status, json=self.sessions)


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest_asyncio.fixture
async def test_app(tmp_path: Path, store_group, config, fake_gateway):
    """创建测试用 FastAPI app（不运行 lifespan，不启动轮询）"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    transport = httpx.MockTransport(fake_gateway.handler)
    config = config.model_copy(update={"notify_url": "http://hooks.test/notify"})

    app = FastAPI()
    app.include_router(activity.router)
    app.include_router(stream.router)
    app.include_router(tasks.router)
    app.include_router(office.router)
    app.include_router(automation.router)
    app.include_router(health.router)

    session_source = HttpSessionSource(
        "http://sessions.test/api/sessions",
        timeout_s=1.0,
        transport=transport,
    )
    memory_log = MemoryLog(tmp_path / "memory")
    notifier = Notifier(config.notify_url, transport=transport)

    app.state.config = config
    app.state.store_group = store_group
    app.state.activity_hub = ActivityHub()
    app.state.memory_log = memory_log
    app.state.session_source = session_source
    app.state.automation_service = AutomationService(
        store_group,
        config,
        notifier=notifier,
        memory_log=memory_log,
    )
    app.state.reconciler = SessionReconciler(store_group, config, source=session_source)
    app.state.periodic_tasks = []

    yield app

    await app.state.automation_service.wait_for_side_effects()
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac
