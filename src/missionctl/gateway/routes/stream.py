"""活动事件 SSE 路由

GET /api/stream/activity: 先补发 Last-Event-ID（或 after_id）之后的历史事件，
再实时推送新事件；按 sse_heartbeat_interval_s 心跳保活。follow=false 时补发完即结束。
"""

import asyncio

from fastapi import APIRouter, Depends, Query, Request
from missionctl.core.config import EVENT_PAGE_MAX, MissionControlConfig
from missionctl.core.models import Event
from sse_starlette.sse import EventSourceResponse

from ..deps import get_activity_hub, get_config, get_store_group

router = APIRouter()


def _event_to_sse(event: Event) -> dict:
    """将 Event 模型转换为 SSE 消息"""
    return {
        "id": str(event.id),
        "event": event.event_type.value,
        "data": event.model_dump_json(),
    }


def _parse_last_event_id(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return max(0, int(raw))
    except ValueError:
        return None


@router.get("/api/stream/activity")
async def stream_activity(
    request: Request,
    agent_id: str | None = Query(default=None, description="按智能体筛选"),
    after_id: int | None = Query(default=None, ge=0, description="从此 id 之后开始补发"),
    follow: bool = Query(default=True, description="补发后是否继续推送新事件"),
    store_group=Depends(get_store_group),
    activity_hub=Depends(get_activity_hub),
    config: MissionControlConfig = Depends(get_config),
):
    """活动事件流端点

    1. 补发游标之后的历史事件（分页读取直到追平）
    2. 注册到 ActivityHub 监听新事件
    3. 实时推送新事件，跳过已补发过的 id
    """
    last_event_id = _parse_last_event_id(request.headers.get("last-event-id"))
    start_id = last_event_id if last_event_id is not None else after_id
    heartbeat_s = config.sse_heartbeat_interval_s

    async def event_generator():
        queue = await activity_hub.subscribe() if follow else None
        try:
            last_sent = start_id or 0
            if start_id is not None:
                while True:
                    events = await store_group.readers.event_store.get_events_after(
                        last_sent, agent_id=agent_id, limit=EVENT_PAGE_MAX
                    )
                    for event in events:
                        last_sent = event.id
                        yield _event_to_sse(event)
                    if len(events) < EVENT_PAGE_MAX:
                        break

            if queue is None:
                return

            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=heartbeat_s)
                except TimeoutError:
                    yield {"comment": "heartbeat"}
                    continue
                if event.id <= last_sent:
                    continue
                if agent_id and event.agent_id != agent_id:
                    continue
                last_sent = event.id
                yield _event_to_sse(event)
        finally:
            if queue is not None:
                await activity_hub.unsubscribe(queue)

    return EventSourceResponse(event_generator())
