"""OfficeStatusStore SQLite 实现

office_status 每个 agent 一行，只 upsert 不删除；每次写入都刷新 updated_at。
对账器使用的写入都带状态条件（以读取时的状态为前提），并发写入方不会被覆盖。
"""

from datetime import UTC, datetime

import aiosqlite

from ..models.enums import StationStatus
from ..models.office import OfficeStation, StationUpsert


class SqliteOfficeStore:
    """OfficeStatusStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get_station(self, agent_id: str) -> OfficeStation | None:
        """根据 agent_id 查询工位"""
        cursor = await self._conn.execute(
            "SELECT * FROM office_status WHERE agent_id = ?",
            (agent_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_station(row)

    async def list_stations(self) -> list[OfficeStation]:
        """查询所有工位，按显示名排序"""
        cursor = await self._conn.execute(
            "SELECT * FROM office_status ORDER BY agent_name ASC, agent_id ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_station(row) for row in rows]

    async def upsert_station(self, data: StationUpsert, now: datetime | None = None) -> None:
        """插入或合并更新工位

        None 字段保留原值；新行缺省 agent_name 时使用 agent_id。
        """
        params = {
            "agent_id": data.agent_id,
            "agent_name": data.agent_name,
            "role": data.role,
            "current_task": data.current_task,
            "status": data.status.value if data.status else None,
            "updated_at": (now or datetime.now(UTC)).isoformat(),
        }
        await self._conn.execute(
            """
            INSERT INTO office_status (agent_id, agent_name, role, current_task, status, updated_at)
            VALUES (
                :agent_id,
                COALESCE(:agent_name, :agent_id),
                COALESCE(:role, ''),
                COALESCE(:current_task, ''),
                COALESCE(:status, 'idle'),
                :updated_at
            )
            ON CONFLICT(agent_id) DO UPDATE SET
                agent_name = COALESCE(:agent_name, office_status.agent_name),
                role = COALESCE(:role, office_status.role),
                current_task = COALESCE(:current_task, office_status.current_task),
                status = COALESCE(:status, office_status.status),
                updated_at = :updated_at
            """,
            params,
        )

    async def update_station(self, data: StationUpsert, now: datetime | None = None) -> bool:
        """部分更新已存在的工位，不创建新行

        Returns:
            True 如果命中一行
        """
        cursor = await self._conn.execute(
            """
            UPDATE office_status SET
                agent_name = COALESCE(:agent_name, agent_name),
                role = COALESCE(:role, role),
                current_task = COALESCE(:current_task, current_task),
                status = COALESCE(:status, status),
                updated_at = :updated_at
            WHERE agent_id = :agent_id
            """,
            {
                "agent_id": data.agent_id,
                "agent_name": data.agent_name,
                "role": data.role,
                "current_task": data.current_task,
                "status": data.status.value if data.status else None,
                "updated_at": (now or datetime.now(UTC)).isoformat(),
            },
        )
        return cursor.rowcount == 1

    async def set_idle_if_working(self, agent_id: str, now: datetime | None = None) -> bool:
        """working -> idle 并清空 current_task；行已不是 working 时不写"""
        cursor = await self._conn.execute(
            """
            UPDATE office_status
            SET status = ?, current_task = '', updated_at = ?
            WHERE agent_id = ? AND status = ?
            """,
            (
                StationStatus.IDLE.value,
                (now or datetime.now(UTC)).isoformat(),
                agent_id,
                StationStatus.WORKING.value,
            ),
        )
        return cursor.rowcount == 1

    async def set_working_if_status(
        self,
        agent_id: str,
        expected: StationStatus,
        now: datetime | None = None,
    ) -> bool:
        """expected -> working；行状态已被其他写入方改变时不写"""
        cursor = await self._conn.execute(
            """
            UPDATE office_status
            SET status = ?, updated_at = ?
            WHERE agent_id = ? AND status = ?
            """,
            (
                StationStatus.WORKING.value,
                (now or datetime.now(UTC)).isoformat(),
                agent_id,
                expected.value,
            ),
        )
        return cursor.rowcount == 1

    async def insert_working(
        self,
        agent_id: str,
        agent_name: str,
        now: datetime | None = None,
    ) -> bool:
        """为新出现的智能体插入 working 行；行已存在时不写"""
        cursor = await self._conn.execute(
            """
            INSERT INTO office_status (agent_id, agent_name, role, current_task, status, updated_at)
            VALUES (?, ?, '', '', ?, ?)
            ON CONFLICT(agent_id) DO NOTHING
            """,
            (
                agent_id,
                agent_name or agent_id,
                StationStatus.WORKING.value,
                (now or datetime.now(UTC)).isoformat(),
            ),
        )
        return cursor.rowcount == 1

    @staticmethod
    def _row_to_station(row: aiosqlite.Row) -> OfficeStation:
        """将数据库行转换为 OfficeStation 模型"""
        return OfficeStation(
            agent_id=row["agent_id"],
            agent_name=row["agent_name"],
            role=row["role"],
            current_task=row["current_task"],
            status=StationStatus(row["status"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
