"""办公室状态路由

GET /api/office: 工位列表，同时返回存储状态与 staleness 修正后的展示状态（display_status）。
POST /api/office: upsert 工位。
PATCH /api/office: 部分更新已存在的工位（404 不存在）。
POST /api/agent-status: 智能体心跳，agent_id 经别名归一化。
所有写入都会刷新 updated_at。
"""

from datetime import UTC, datetime, timedelta

import structlog
from fastapi import APIRouter, Depends
from missionctl.core.models import OfficeStation, StationStatus, StationUpsert
from missionctl.core.store import transaction
from pydantic import BaseModel, Field

from ..deps import error_response, get_config, get_store_group

log = structlog.get_logger()

router = APIRouter()


class StationView(OfficeStation):
    """工位视图：display_status 为读取时经 staleness 修正后的状态"""

    display_status: StationStatus


class AgentHeartbeat(BaseModel):
    """智能体心跳"""

    agent_id: str = Field(min_length=1)
    agent_name: str = Field(min_length=1)
    status: StationStatus
    current_task: str = Field(default="")


class OkResponse(BaseModel):
    ok: bool = True


def _to_view(station: OfficeStation, now: datetime, stale_after: timedelta) -> StationView:
    return StationView(
        **station.model_dump(),
        display_status=station.effective_status(now, stale_after),
    )


@router.get("/api/office", response_model=list[StationView])
async def list_stations(
    store_group=Depends(get_store_group),
    config=Depends(get_config),
):
    """查询所有工位"""
    now = datetime.now(UTC)
    stale_after = timedelta(seconds=config.stale_working_seconds)
    stations = await store_group.readers.office_store.list_stations()
    return [_to_view(station, now, stale_after) for station in stations]


@router.post("/api/office", response_model=StationView)
async def upsert_station(
    body: StationUpsert,
    store_group=Depends(get_store_group),
    config=Depends(get_config),
):
    """插入或合并更新工位"""
    async with transaction(store_group):
        await store_group.office_store.upsert_station(body)
        station = await store_group.office_store.get_station(body.agent_id)
    log.info("station_upserted", agent_id=body.agent_id, status=station.status)
    return _to_view(station, datetime.now(UTC), timedelta(seconds=config.stale_working_seconds))


@router.patch("/api/office", response_model=StationView)
async def update_station(
    body: StationUpsert,
    store_group=Depends(get_store_group),
    config=Depends(get_config),
):
    """部分更新已存在的工位"""
    async with transaction(store_group):
        updated = await store_group.office_store.update_station(body)
        station = await store_group.office_store.get_station(body.agent_id)
    if not updated or station is None:
        return error_response(
            404,
            "STATION_NOT_FOUND",
            f"Station for agent {body.agent_id} does not exist",
        )
    return _to_view(station, datetime.now(UTC), timedelta(seconds=config.stale_working_seconds))


@router.post("/api/agent-status", response_model=OkResponse)
async def agent_status(
    body: AgentHeartbeat,
    store_group=Depends(get_store_group),
    config=Depends(get_config),
):
    """智能体心跳：别名归一化后 upsert 状态与当前任务"""
    agent_id = config.alias_map.get(body.agent_id, body.agent_id)
    agent_name = config.main_agent_name if agent_id == config.main_agent_id else body.agent_name

    async with transaction(store_group):
        await store_group.office_store.upsert_station(
            StationUpsert(
                agent_id=agent_id,
                agent_name=agent_name,
                current_task=body.current_task,
                status=body.status,
            )
        )
    log.info("agent_heartbeat", agent_id=agent_id, status=body.status)
    return OkResponse()
