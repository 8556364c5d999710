"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 服务初始化 + 轮询循环启停 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from missionctl.core.config import get_db_path, get_memory_dir, load_config
from missionctl.core.reconciler import SessionReconciler
from missionctl.core.store import create_store_group

from .middleware.agent_context_mw import AgentContextMiddleware
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .routes import activity, automation, health, office, stream, tasks
from .services.activity_hub import ActivityHub
from .services.automation_service import AutomationService
from .services.memory_log import MemoryLog
from .services.notifier import Notifier
from .services.scheduler import PeriodicTask
from .services.session_source import HttpSessionSource

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB、服务与轮询循环，关闭时按相反顺序清理"""
    config = load_config()
    app.state.config = config

    store_group = await create_store_group(get_db_path())
    app.state.store_group = store_group
    app.state.activity_hub = ActivityHub()

    memory_log = MemoryLog(get_memory_dir(), config.memory_timezone)
    notifier = Notifier(config.notify_url, config.notify_timeout_s)
    session_source = HttpSessionSource(
        config.session_source_url,
        timeout_s=config.session_source_timeout_s,
    )
    automation_service = AutomationService(
        store_group,
        config,
        notifier=notifier,
        memory_log=memory_log,
    )
    reconciler = SessionReconciler(store_group, config, source=session_source)

    app.state.memory_log = memory_log
    app.state.session_source = session_source
    app.state.automation_service = automation_service
    app.state.reconciler = reconciler

    periodic_tasks: list[PeriodicTask] = []
    if config.loops_enabled:
        periodic_tasks = [
            PeriodicTask(
                "automation",
                automation_service.run_tick,
                interval_s=config.automation_interval_s,
                tick_timeout_s=config.tick_timeout_s,
            ),
            PeriodicTask(
                "reconcile",
                reconciler.reconcile_from_source,
                interval_s=config.reconcile_interval_s,
                tick_timeout_s=config.tick_timeout_s,
            ),
        ]
        for task in periodic_tasks:
            task.start()
    app.state.periodic_tasks = periodic_tasks

    log.info(
        "mission_control_started",
        loops_enabled=config.loops_enabled,
        qa_agent_id=config.qa_agent_id,
        engineer_agent_id=config.engineer_agent_id,
        session_source_url=config.session_source_url,
        notify_enabled=notifier.enabled,
    )

    yield

    for task in periodic_tasks:
        await task.stop()
    await automation_service.wait_for_side_effects()
    await store_group.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Mission Control",
        version="0.1.0",
        description="Agent fleet state reconciliation API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 AgentContext 后 Logging，Logging 在最外层清理 contextvars）
    app.add_middleware(AgentContextMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    setup_logfire(app)

    app.include_router(activity.router, tags=["activity"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(office.router, tags=["office"])
    app.include_router(automation.router, tags=["automation"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
