"""Gateway 启动入口 -- python -m missionctl.gateway 或 missionctl-gateway

环境变量：
  MISSIONCTL_HOST  监听地址（默认 127.0.0.1）
  MISSIONCTL_PORT  监听端口（默认 8000，非法值记录 warning 后回退）
"""

import os

import structlog
import uvicorn

log = structlog.get_logger()

APP_PATH = "missionctl.gateway.main:app"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def _resolve_port() -> int:
    raw = os.environ.get("MISSIONCTL_PORT")
    if not raw:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError:
        port = 0
    if not 0 < port < 65536:
        log.warning("invalid_port_config", env_var="MISSIONCTL_PORT", value=raw)
        return DEFAULT_PORT
    return port


def run() -> None:
    """用 uvicorn 启动 FastAPI 应用"""
    host = os.environ.get("MISSIONCTL_HOST") or DEFAULT_HOST
    port = _resolve_port()
    log.info("gateway_starting", host=host, port=port)
    uvicorn.run(APP_PATH, host=host, port=port, log_config=None)


if __name__ == "__main__":
    run()
