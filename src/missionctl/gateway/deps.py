"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store 与服务实例

实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from missionctl.core.config import MissionControlConfig
from missionctl.core.reconciler import SessionReconciler
from missionctl.core.store import StoreGroup
from starlette.responses import JSONResponse

from .services.activity_hub import ActivityHub
from .services.automation_service import AutomationService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_config(request: Request) -> MissionControlConfig:
    """从 app.state 获取运行时配置"""
    return request.app.state.config


def get_activity_hub(request: Request) -> ActivityHub:
    """从 app.state 获取 ActivityHub 实例"""
    return request.app.state.activity_hub


def get_automation_service(request: Request) -> AutomationService:
    """从 app.state 获取 AutomationService 实例"""
    return request.app.state.automation_service


def get_reconciler(request: Request) -> SessionReconciler:
    """从 app.state 获取 SessionReconciler 实例"""
    return request.app.state.reconciler


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    """统一错误响应体 {"error": {"code", "message"}}"""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
            }
        },
    )
