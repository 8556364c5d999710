"""Notifier -- best-effort 通知投递

POST {notify_url} JSON {"message": ...}。未配置 URL 时直接跳过；
任何失败只记录日志，不影响调用方。
"""

import httpx
import structlog

log = structlog.get_logger()


class Notifier:
    """webhook 通知发送器"""

    def __init__(
        self,
        url: str = "",
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout_s = timeout_s
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    async def notify(self, message: str) -> bool:
        """发送通知

        Returns:
            True 如果对端返回 2xx；未启用或失败返回 False
        """
        if not self.enabled:
            log.debug("notification_skipped", reason="notify_url_unset")
            return False

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._timeout_s,
            ) as http_client:
                resp = await http_client.post(self._url, json={"message": message})
        except httpx.HTTPError as e:
            log.warning("notification_failed", url=self._url, error=str(e))
            return False

        if resp.status_code // 100 != 2:
            log.warning(
                "notification_rejected",
                url=self._url,
                status_code=resp.status_code,
            )
            return False

        log.info("notification_sent", url=self._url)
        return True
