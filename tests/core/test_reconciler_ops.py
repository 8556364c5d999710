"""会话对账测试

测试内容：
1. 别名归一化：main active + babbage idle -> 单行 babbage working
2. 幂等：同一批快照第二次对账不写入、updated_at 不变
3. 失败开放：来源失败或返回空列表时零写入
4. staleness：15 分钟前的 working 读取为 idle，且不回写
5. 对账器从不写 offline，只为 working 智能体创建新行
"""

from datetime import timedelta

import pytest
from missionctl.core.exceptions import SessionSourceError, SessionSourceUnreachableError
from missionctl.core.models import (
    SessionSnapshot,
    SessionStatus,
    StationStatus,
    StationUpsert,
)
from missionctl.core.reconciler import SessionReconciler, canonicalize
from missionctl.core.store import transaction


def _snap(agent_id: str, status: SessionStatus, agent_name: str = "") -> SessionSnapshot:
    return SessionSnapshot(agent_id=agent_id, agent_name=agent_name, status=status)


class StubSource:
    """返回固定结果或抛出异常的会话来源"""

    def __init__(self, snapshots=None, error: Exception | None = None) -> None:
        self.snapshots = snapshots or []
        self.error = error
        self.calls = 0

    async def fetch_snapshots(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.snapshots


async def _dump_office(store_group) -> list[tuple]:
    cursor = await store_group.conn.execute("SELECT * FROM office_status ORDER BY agent_id")
    return [tuple(row) for row in await cursor.fetchall()]


async def _seed(store_group, agent_id: str, status: StationStatus, now) -> None:
    async with transaction(store_group):
        await store_group.office_store.upsert_station(
            StationUpsert(agent_id=agent_id, status=status, current_task="something"),
            now=now,
        )


class TestCanonicalize:
    """别名归一化"""

    def test_main_alias_merged_into_babbage(self, config):
        merged = canonicalize(
            [_snap("main", SessionStatus.ACTIVE, "main"), _snap("babbage", SessionStatus.IDLE)],
            config,
        )
        assert list(merged) == ["babbage"]
        assert merged["babbage"].status == SessionStatus.ACTIVE
        assert merged["babbage"].agent_name == "Babbage"

    def test_active_wins_regardless_of_order(self, config):
        merged = canonicalize(
            [_snap("babbage", SessionStatus.IDLE), _snap("main", SessionStatus.ACTIVE)],
            config,
        )
        assert merged["babbage"].status == SessionStatus.ACTIVE

    def test_later_idle_does_not_downgrade(self, config):
        merged = canonicalize(
            [_snap("hustle", SessionStatus.ACTIVE), _snap("hustle", SessionStatus.IDLE)],
            config,
        )
        assert merged["hustle"].status == SessionStatus.ACTIVE


class TestReconcile:
    """对账写入"""

    async def test_canonicalization_creates_single_working_row(self, store_group, config, t0):
        reconciler = SessionReconciler(store_group, config)
        result = await reconciler.reconcile(
            [_snap("main", SessionStatus.ACTIVE), _snap("babbage", SessionStatus.IDLE)],
            now=t0,
        )

        assert result.created == ["babbage"]
        stations = await store_group.office_store.list_stations()
        assert [(s.agent_id, s.agent_name, s.status) for s in stations] == [
            ("babbage", "Babbage", StationStatus.WORKING)
        ]

    async def test_second_reconcile_is_noop(self, store_group, config, t0):
        reconciler = SessionReconciler(store_group, config)
        snapshots = [_snap("hustle", SessionStatus.ACTIVE), _snap("roadie", SessionStatus.IDLE)]
        await _seed(store_group, "roadie", StationStatus.WORKING, t0)

        first = await reconciler.reconcile(snapshots, now=t0)
        assert first.write_count == 2
        before = await _dump_office(store_group)

        second = await reconciler.reconcile(snapshots, now=t0 + timedelta(minutes=1))
        assert second.write_count == 0
        assert await _dump_office(store_group) == before

    async def test_working_not_desired_goes_idle(self, store_group, config, t0):
        await _seed(store_group, "tldr", StationStatus.WORKING, t0)
        reconciler = SessionReconciler(store_group, config)

        result = await reconciler.reconcile([_snap("hustle", SessionStatus.IDLE)], now=t0)

        assert result.set_idle == ["tldr"]
        station = await store_group.office_store.get_station("tldr")
        assert station.status == StationStatus.IDLE
        assert station.current_task == ""
        # idle 快照不会创建新行
        assert await store_group.office_store.get_station("hustle") is None

    async def test_offline_row_desired_goes_working(self, store_group, config, t0):
        await _seed(store_group, "browser", StationStatus.OFFLINE, t0)
        reconciler = SessionReconciler(store_group, config)

        result = await reconciler.reconcile([_snap("browser", SessionStatus.ACTIVE)], now=t0)

        assert result.set_working == ["browser"]
        station = await store_group.office_store.get_station("browser")
        assert station.status == StationStatus.WORKING
        assert station.current_task == "something"

    async def test_never_writes_offline(self, store_group, config, t0):
        await _seed(store_group, "comms", StationStatus.OFFLINE, t0)
        reconciler = SessionReconciler(store_group, config)

        await reconciler.reconcile([_snap("hustle", SessionStatus.ACTIVE)], now=t0)

        station = await store_group.office_store.get_station("comms")
        assert station.status == StationStatus.OFFLINE
        assert station.updated_at == t0

    async def test_conditional_write_skips_changed_row(self, store_group, t0):
        """行状态在读取后被其他写入方改变时，条件写入不生效"""
        await _seed(store_group, "hustle", StationStatus.IDLE, t0)
        async with transaction(store_group):
            assert not await store_group.office_store.set_idle_if_working("hustle", now=t0)
            assert not await store_group.office_store.set_working_if_status(
                "hustle", expected=StationStatus.OFFLINE, now=t0
            )
        station = await store_group.office_store.get_station("hustle")
        assert station.status == StationStatus.IDLE


class TestFailOpen:
    """来源失败时零写入"""

    @pytest.mark.parametrize(
        "error",
        [
            SessionSourceError("HTTP 500"),
            SessionSourceUnreachableError("http://x", ConnectionError("refused")),
        ],
    )
    async def test_source_failure_writes_nothing(self, store_group, config, t0, error):
        await _seed(store_group, "hustle", StationStatus.WORKING, t0)
        await _seed(store_group, "ralph", StationStatus.IDLE, t0)
        before = await _dump_office(store_group)

        reconciler = SessionReconciler(store_group, config, source=StubSource(error=error))
        result = await reconciler.reconcile_from_source(now=t0 + timedelta(minutes=1))

        assert result.skipped
        assert result.error
        assert result.write_count == 0
        assert await _dump_office(store_group) == before

    async def test_empty_snapshot_list_writes_nothing(self, store_group, config, t0):
        await _seed(store_group, "hustle", StationStatus.WORKING, t0)
        before = await _dump_office(store_group)

        reconciler = SessionReconciler(store_group, config, source=StubSource(snapshots=[]))
        result = await reconciler.reconcile_from_source(now=t0)

        assert result.skipped
        assert result.error is None
        assert await _dump_office(store_group) == before

    async def test_success_path_reconciles(self, store_group, config, t0):
        source = StubSource(snapshots=[_snap("hustle", SessionStatus.ACTIVE, "Hustle")])
        reconciler = SessionReconciler(store_group, config, source=source)

        result = await reconciler.reconcile_from_source(now=t0)

        assert source.calls == 1
        assert result.created == ["hustle"]


class TestStaleness:
    """读取时 staleness 修正"""

    async def test_stale_working_reads_idle_without_write(self, store_group, config, t0):
        await _seed(store_group, "hustle", StationStatus.WORKING, t0 - timedelta(minutes=15))
        before = await _dump_office(store_group)

        station = await store_group.office_store.get_station("hustle")
        stale_after = timedelta(seconds=config.stale_working_seconds)
        assert station.effective_status(t0, stale_after) == StationStatus.IDLE
        assert station.status == StationStatus.WORKING
        assert await _dump_office(store_group) == before

    async def test_fresh_working_reads_working(self, store_group, config, t0):
        await _seed(store_group, "hustle", StationStatus.WORKING, t0 - timedelta(minutes=5))
        station = await store_group.office_store.get_station("hustle")
        stale_after = timedelta(seconds=config.stale_working_seconds)
        assert station.effective_status(t0, stale_after) == StationStatus.WORKING
