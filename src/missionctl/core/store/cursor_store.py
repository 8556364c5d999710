"""CursorStore SQLite 实现

一行对应一个逻辑消费者，value 单调不减。
推进使用 compare-and-set：只有当前值仍等于读取时的值才写入，
并发轮询的败者据此发现竞争并丢弃结果。
"""

from datetime import UTC, datetime

import aiosqlite

from ..models.cursor import Cursor


class SqliteCursorStore:
    """CursorStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get_cursor(self, key: str) -> int:
        """读取游标值，不存在时为 0"""
        cursor = await self._conn.execute(
            "SELECT value FROM automation_cursors WHERE key = ?",
            (key,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def compare_and_set(
        self,
        key: str,
        expected: int,
        new_value: int,
        now: datetime | None = None,
    ) -> bool:
        """仅当当前值等于 expected 时把游标推进到 new_value

        注意：此方法不自动提交事务，需由调用方管理事务。

        Returns:
            True 如果写入成功；False 表示游标已被其他轮询者推进

        Raises:
            ValueError: new_value 不大于 expected（游标只能前进）
        """
        if new_value <= expected:
            raise ValueError(
                f"cursor {key!r} must move forward (expected={expected}, new={new_value})"
            )
        updated_at = (now or datetime.now(UTC)).isoformat()

        if expected == 0:
            # 首次推进：行可能尚不存在
            cursor = await self._conn.execute(
                """
                INSERT INTO automation_cursors (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                WHERE automation_cursors.value = 0
                """,
                (key, new_value, updated_at),
            )
        else:
            cursor = await self._conn.execute(
                """
                UPDATE automation_cursors
                SET value = ?, updated_at = ?
                WHERE key = ? AND value = ?
                """,
                (new_value, updated_at, key, expected),
            )
        return cursor.rowcount == 1

    async def list_cursors(self) -> list[Cursor]:
        """列出所有游标（按 key 排序）"""
        cursor = await self._conn.execute(
            "SELECT key, value, updated_at FROM automation_cursors ORDER BY key ASC"
        )
        rows = await cursor.fetchall()
        return [
            Cursor(
                key=row["key"],
                value=row["value"],
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
            for row in rows
        ]
