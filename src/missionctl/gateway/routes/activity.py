"""活动事件路由

POST /api/activity: 事件写入（append-only），成功后广播到活动流。
GET /api/activity: 事件分页查询；默认按 id 倒序，带 after_id 时按 id 正序增量读取。
"""

import structlog
from fastapi import APIRouter, Depends, Query
from missionctl.core.models import Event, EventCreate
from missionctl.core.store import append_activity_event

from ..deps import get_activity_hub, get_store_group

log = structlog.get_logger()

router = APIRouter()


@router.post("/api/activity", status_code=201, response_model=Event)
async def create_activity(
    body: EventCreate,
    store_group=Depends(get_store_group),
    activity_hub=Depends(get_activity_hub),
):
    """写入一条活动事件"""
    event = await append_activity_event(store_group, body)
    await activity_hub.broadcast(event)
    log.info(
        "activity_appended",
        event_id=event.id,
        event_type=event.event_type,
        agent_id=event.agent_id,
    )
    return event


@router.get("/api/activity", response_model=list[Event])
async def list_activity(
    agent_id: str | None = Query(default=None, description="按智能体筛选"),
    limit: int | None = Query(default=None, ge=1, description="分页大小，上限 200"),
    before_id: int | None = Query(default=None, ge=1, description="只返回 id 更小的事件"),
    after_id: int | None = Query(default=None, ge=0, description="增量读取：id 更大的事件"),
    store_group=Depends(get_store_group),
):
    """查询活动事件"""
    event_store = store_group.readers.event_store
    if after_id is not None:
        return await event_store.get_events_after(after_id, agent_id=agent_id, limit=limit)
    return await event_store.list_events(agent_id=agent_id, limit=limit, before_id=before_id)
