"""AgentContextMiddleware -- 智能体上下文绑定

请求携带 agent_id 查询参数时（活动流、事件分页），绑定到 structlog contextvars，
使同一请求内的日志都能按智能体检索。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


class AgentContextMiddleware(BaseHTTPMiddleware):
    """为带 agent_id 的请求绑定智能体上下文"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        agent_id = request.query_params.get("agent_id")
        if agent_id:
            structlog.contextvars.bind_contextvars(agent_id=agent_id)

        return await call_next(request)
