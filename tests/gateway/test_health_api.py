"""健康检查测试

测试内容：
1. /health 永远 200
2. /ready 默认 core profile 不探测会话来源
3. /ready?profile=full 探测会话来源
"""

import httpx
from httpx import AsyncClient


class TestHealth:
    """Liveness / Readiness"""

    async def test_health(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_ready_core(self, client: AsyncClient):
        resp = await client.get("/ready")
        assert resp.status_code == 200
        data = resp.json()
        assert data["profile"] == "core"
        assert data["checks"]["sqlite"] == "ok"
        assert data["checks"]["memory_dir"] == "ok"
        assert data["checks"]["loops"] == "disabled"
        assert data["checks"]["session_source"] == "skipped"

    async def test_ready_full_source_ok(self, client: AsyncClient):
        resp = await client.get("/ready", params={"profile": "full"})
        assert resp.status_code == 200
        assert resp.json()["checks"]["session_source"] == "ok"

    async def test_ready_full_source_down(self, client: AsyncClient, fake_gateway):
        fake_gateway.session_error = httpx.ConnectError("down")
        resp = await client.get("/ready", params={"profile": "full"})
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "not_ready"
        assert data["checks"]["session_source"] == "unreachable"
