"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、memory 目录、轮询循环状态；
         profile=full 时额外探测会话来源。
"""

import structlog
from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    profile: str | None = Query(
        default=None,
        description="检查配置文件：core（默认）仅核心检查；full 包含会话来源探测",
    ),
):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性
    2. memory_dir: memory 日志目录可写（不存在时视为可创建）
    3. loops: 后台轮询循环是否运行（未启用时为 disabled）
    4. session_source: 仅 profile=full 时探测
    """
    effective_profile = profile or "core"

    checks = {}
    all_ok = True

    # 1. SQLite 连通性检查
    try:
        store_group = request.app.state.store_group
        for conn in (store_group.conn, store_group.readers.conn):
            cursor = await conn.execute("SELECT 1")
            await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 2. memory 目录检查
    memory_log = getattr(request.app.state, "memory_log", None)
    if memory_log is None:
        checks["memory_dir"] = "skipped"
    else:
        memory_dir = memory_log.memory_dir
        if memory_dir.exists() and not memory_dir.is_dir():
            checks["memory_dir"] = "error: not a directory"
            all_ok = False
        else:
            checks["memory_dir"] = "ok"

    # 3. 轮询循环
    loops = getattr(request.app.state, "periodic_tasks", [])
    if not loops:
        checks["loops"] = "disabled"
    else:
        checks["loops"] = {task.name: "running" if task.running else "stopped" for task in loops}
        if not all(task.running for task in loops):
            all_ok = False

    # 4. 会话来源
    if effective_profile == "full":
        session_source = getattr(request.app.state, "session_source", None)
        if session_source is not None and await session_source.health_check():
            checks["session_source"] = "ok"
        else:
            checks["session_source"] = "unreachable"
            all_ok = False
    else:
        checks["session_source"] = "skipped"

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "profile": effective_profile,
            "checks": checks,
        },
    )
