"""HttpSessionSource -- 外部会话快照来源客户端

GET {session_source_url} 返回 [{agent_id, agent_name, status}]。
任何失败（不可达、超时、非 2xx、payload 非法）都转换为 SessionSourceError，
由对账器按 "本 tick 不更新" 处理。
"""

import httpx
import structlog
from missionctl.core.exceptions import SessionSourceError, SessionSourceUnreachableError
from missionctl.core.models import SessionSnapshot
from pydantic import TypeAdapter, ValidationError

log = structlog.get_logger()

# 健康检查超时（应快速响应）
HEALTH_CHECK_TIMEOUT_S = 3

_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
    httpx.TransportError,
)

_SNAPSHOT_LIST = TypeAdapter(list[SessionSnapshot])


class HttpSessionSource:
    """基于 httpx 的会话快照来源"""

    def __init__(
        self,
        url: str,
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            url: 会话快照接口 URL
            timeout_s: 请求超时（秒）
            transport: 自定义 httpx transport（测试注入 MockTransport）
        """
        self._url = url
        self._timeout_s = timeout_s
        self._transport = transport

    async def fetch_snapshots(self) -> list[SessionSnapshot]:
        """拉取当前会话快照

        Raises:
            SessionSourceUnreachableError: 连接失败或超时
            SessionSourceError: 非 2xx 响应或 payload 非法
        """
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._timeout_s,
            ) as http_client:
                resp = await http_client.get(self._url)
        except _CONNECTION_ERROR_TYPES as e:
            raise SessionSourceUnreachableError(self._url, e) from e

        if resp.status_code // 100 != 2:
            raise SessionSourceError(
                f"Session source returned HTTP {resp.status_code}: {self._url}"
            )

        try:
            return _SNAPSHOT_LIST.validate_json(resp.content)
        except ValidationError as e:
            raise SessionSourceError(
                f"Session source returned malformed payload: {e.error_count()} errors"
            ) from e

    async def health_check(self) -> bool:
        """检查会话来源可达性

        注意: 此方法不抛出异常，所有异常内部捕获并返回 False。
        """
        try:
            async with httpx.AsyncClient(transport=self._transport) as http_client:
                resp = await http_client.get(self._url, timeout=HEALTH_CHECK_TIMEOUT_S)
                return resp.status_code == 200
        except Exception as e:
            log.debug("session_source_health_check_failed", url=self._url, error=str(e))
            return False
