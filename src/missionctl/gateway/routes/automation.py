"""自动化与对账路由

POST /api/automation/run: 立即执行一次自动化 tick。
GET /api/automation/cursors: 列出所有消费游标。
POST /api/sync-sessions: 立即执行一次会话对账；来源失败返回 502 且不写入。
"""

from fastapi import APIRouter, Depends
from missionctl.core.models import Cursor, ReconcileResult

from ..deps import error_response, get_automation_service, get_reconciler, get_store_group
from ..services.automation_service import AutomationRunResult

router = APIRouter()


@router.post("/api/automation/run", response_model=AutomationRunResult)
async def run_automation(
    automation_service=Depends(get_automation_service),
):
    """执行一次自动化检查"""
    return await automation_service.run_tick()


@router.get("/api/automation/cursors", response_model=list[Cursor])
async def list_cursors(
    store_group=Depends(get_store_group),
):
    """列出所有游标"""
    return await store_group.readers.cursor_store.list_cursors()


@router.post("/api/sync-sessions", response_model=ReconcileResult)
async def sync_sessions(
    reconciler=Depends(get_reconciler),
):
    """执行一次会话对账"""
    result = await reconciler.reconcile_from_source()
    if result.error is not None:
        return error_response(502, "SESSION_SOURCE_UNAVAILABLE", result.error)
    return result
