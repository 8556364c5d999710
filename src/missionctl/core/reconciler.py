"""办公室状态对账

每个 tick 拉取外部会话快照，把 office_status 收敛到 "谁在工作" 的真实状态。
- 来源失败或返回空列表时本 tick 不做任何写入
- 已存在的行只在状态需要变化时写入，且以读取时的状态为条件
- 只为应处于 working 的智能体创建新行；对账器从不写 offline
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

import structlog

from .config import MissionControlConfig
from .exceptions import SessionSourceError
from .models.enums import SessionStatus, StationStatus
from .models.office import ReconcileResult, SessionSnapshot
from .store import StoreGroup
from .store.transaction import transaction

log = structlog.get_logger()


class SessionSource(Protocol):
    """外部会话快照来源"""

    async def fetch_snapshots(self) -> list[SessionSnapshot]:
        """拉取当前会话快照

        Raises:
            SessionSourceError: 来源不可达或返回非法数据
        """
        ...


def canonicalize(
    snapshots: Iterable[SessionSnapshot],
    config: MissionControlConfig,
) -> dict[str, SessionSnapshot]:
    """按别名表归一化 agent_id，并把同一智能体的多个会话合并为一条

    任一会话为 active 即视为 active；主智能体使用固定显示名。
    """
    merged: dict[str, SessionSnapshot] = {}
    alias_map = config.alias_map
    for snapshot in snapshots:
        agent_id = alias_map.get(snapshot.agent_id, snapshot.agent_id)
        if agent_id == config.main_agent_id:
            agent_name = config.main_agent_name
        else:
            agent_name = snapshot.agent_name or config.agent_name(agent_id)

        existing = merged.get(agent_id)
        if existing is None or snapshot.status == SessionStatus.ACTIVE:
            status = snapshot.status
            if existing is not None and existing.status == SessionStatus.ACTIVE:
                status = SessionStatus.ACTIVE
            merged[agent_id] = SessionSnapshot(
                agent_id=agent_id,
                agent_name=agent_name,
                status=status,
            )
    return merged


class SessionReconciler:
    """office_status 对账器"""

    def __init__(
        self,
        store_group: StoreGroup,
        config: MissionControlConfig,
        source: SessionSource | None = None,
    ) -> None:
        self._stores = store_group
        self._config = config
        self._source = source

    async def reconcile(
        self,
        snapshots: list[SessionSnapshot],
        now: datetime | None = None,
    ) -> ReconcileResult:
        """用一批快照对账 office_status

        Args:
            snapshots: 本 tick 拉取的会话快照
            now: 写入时间（测试注入）
        """
        canonical = canonicalize(snapshots, self._config)
        desired_working = {
            agent_id
            for agent_id, snapshot in canonical.items()
            if snapshot.status == SessionStatus.ACTIVE
        }
        result = ReconcileResult()

        async with transaction(self._stores):
            office_store = self._stores.office_store
            stations = await office_store.list_stations()
            known_ids = set()
            for station in stations:
                known_ids.add(station.agent_id)
                wanted = station.agent_id in desired_working
                if station.status == StationStatus.WORKING and not wanted:
                    if await office_store.set_idle_if_working(station.agent_id, now=now):
                        result.set_idle.append(station.agent_id)
                elif station.status != StationStatus.WORKING and wanted:
                    if await office_store.set_working_if_status(
                        station.agent_id,
                        expected=station.status,
                        now=now,
                    ):
                        result.set_working.append(station.agent_id)

            for agent_id in sorted(desired_working - known_ids):
                if await office_store.insert_working(
                    agent_id,
                    canonical[agent_id].agent_name,
                    now=now,
                ):
                    result.created.append(agent_id)

        log.info(
            "reconcile_completed",
            snapshots=len(snapshots),
            agents=len(canonical),
            set_working=result.set_working,
            set_idle=result.set_idle,
            created=result.created,
        )
        return result

    async def reconcile_from_source(self, now: datetime | None = None) -> ReconcileResult:
        """拉取快照并对账；来源失败或结果为空时不做任何写入"""
        if self._source is None:
            raise RuntimeError("SessionReconciler has no session source")

        try:
            snapshots = await self._source.fetch_snapshots()
        except SessionSourceError as e:
            log.warning("session_source_fetch_failed", error=str(e))
            return ReconcileResult(skipped=True, error=str(e))

        if not snapshots:
            log.info("session_source_empty")
            return ReconcileResult(skipped=True)

        return await self.reconcile(snapshots, now=now)
