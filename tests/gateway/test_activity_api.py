"""活动事件 API 测试

测试内容：
1. 写入成功返回 201 与落盘事件
2. 缺字段、空字段、未知 event_type 返回 422
3. 倒序分页、agent_id 筛选、after_id 增量
4. SSE 补发历史事件（follow=false）
"""

import json

from httpx import AsyncClient


def _payload(**overrides) -> dict:
    body = {
        "agent_id": "ralph",
        "agent_name": "Ralph",
        "event_type": "task_end",
        "title": "Approved",
    }
    body.update(overrides)
    return body


class TestIngest:
    """POST /api/activity"""

    async def test_append_event(self, client: AsyncClient):
        resp = await client.post("/api/activity", json=_payload(detail="all green"))
        assert resp.status_code == 201
        data = resp.json()
        assert data["id"] >= 1
        assert data["event_type"] == "task_end"
        assert data["detail"] == "all green"

    async def test_unknown_event_type(self, client: AsyncClient):
        resp = await client.post("/api/activity", json=_payload(event_type="celebration"))
        assert resp.status_code == 422

    async def test_missing_field(self, client: AsyncClient):
        body = _payload()
        del body["agent_name"]
        resp = await client.post("/api/activity", json=body)
        assert resp.status_code == 422

    async def test_empty_title(self, client: AsyncClient):
        resp = await client.post("/api/activity", json=_payload(title=""))
        assert resp.status_code == 422

    async def test_broadcast_to_hub(self, client: AsyncClient, test_app):
        hub = test_app.state.activity_hub
        queue = await hub.subscribe()
        assert hub.subscriber_count == 1
        resp = await client.post("/api/activity", json=_payload())
        event = queue.get_nowait()
        assert event.id == resp.json()["id"]


class TestQuery:
    """GET /api/activity"""

    async def test_newest_first_and_filter(self, client: AsyncClient):
        ids = []
        for agent in ("ralph", "code-monkey", "ralph"):
            resp = await client.post("/api/activity", json=_payload(agent_id=agent))
            ids.append(resp.json()["id"])

        resp = await client.get("/api/activity", params={"agent_id": "ralph"})
        assert [e["id"] for e in resp.json()] == [ids[2], ids[0]]

    async def test_before_and_after_id(self, client: AsyncClient):
        ids = []
        for i in range(4):
            resp = await client.post("/api/activity", json=_payload(title=f"e{i}"))
            ids.append(resp.json()["id"])

        resp = await client.get("/api/activity", params={"before_id": ids[2], "limit": 1})
        assert [e["id"] for e in resp.json()] == [ids[1]]

        resp = await client.get("/api/activity", params={"after_id": ids[1]})
        assert [e["id"] for e in resp.json()] == [ids[2], ids[3]]


class TestActivityStream:
    """GET /api/stream/activity"""

    async def test_replay_after_last_event_id(self, client: AsyncClient):
        ids = []
        for i in range(3):
            resp = await client.post("/api/activity", json=_payload(title=f"e{i}"))
            ids.append(resp.json()["id"])

        data_lines = []
        async with client.stream(
            "GET",
            "/api/stream/activity",
            params={"follow": "false"},
            headers={"Last-Event-ID": str(ids[0])},
        ) as resp:
            assert resp.status_code == 200
            async for line in resp.aiter_lines():
                if line.startswith("data:"):
                    data_lines.append(json.loads(line[len("data:"):].strip()))

        assert [e["id"] for e in data_lines] == [ids[1], ids[2]]
        assert data_lines[0]["title"] == "e1"
