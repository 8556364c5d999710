"""EventStore SQLite 实现

activity_feed 表 append-only：只允许插入，不允许更新或删除（由触发器兜底）。
"id > cursor" 即为 "自上次检查以来的新事件"，对所有消费者成立。
"""

from datetime import UTC, datetime

import aiosqlite

from ..config import EVENT_PAGE_DEFAULT, EVENT_PAGE_MAX
from ..models.enums import EventType
from ..models.event import Event, EventCreate, EventFilter


def clamp_page_size(limit: int | None) -> int:
    """把请求的分页大小限制在 [1, EVENT_PAGE_MAX]"""
    if limit is None:
        return EVENT_PAGE_DEFAULT
    return max(1, min(limit, EVENT_PAGE_MAX))


class SqliteEventStore:
    """EventStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_event(self, data: EventCreate, now: datetime | None = None) -> int:
        """追加事件（append-only），返回新事件 id

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        created_at = now or datetime.now(UTC)
        cursor = await self._conn.execute(
            """
            INSERT INTO activity_feed (agent_id, agent_name, event_type, title, detail, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                data.agent_id,
                data.agent_name,
                data.event_type.value,
                data.title,
                data.detail,
                created_at.isoformat(),
            ),
        )
        return cursor.lastrowid

    async def get_event(self, event_id: int) -> Event | None:
        """根据 id 查询单条事件"""
        cursor = await self._conn.execute(
            "SELECT * FROM activity_feed WHERE id = ?",
            (event_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_event(row)

    async def list_events(
        self,
        agent_id: str | None = None,
        limit: int | None = None,
        before_id: int | None = None,
    ) -> list[Event]:
        """按 id 倒序分页查询，可按 agent_id 过滤"""
        clauses: list[str] = []
        params: list = []
        if agent_id:
            clauses.append("agent_id = ?")
            params.append(agent_id)
        if before_id is not None:
            clauses.append("id < ?")
            params.append(before_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(clamp_page_size(limit))

        cursor = await self._conn.execute(
            f"SELECT * FROM activity_feed {where} ORDER BY id DESC LIMIT ?",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def get_events_after(
        self,
        after_id: int,
        agent_id: str | None = None,
        limit: int | None = None,
    ) -> list[Event]:
        """查询指定 id 之后的增量事件，按 id 正序（用于轮询与 SSE 断线重连）"""
        if agent_id:
            cursor = await self._conn.execute(
                """
                SELECT * FROM activity_feed
                WHERE id > ? AND agent_id = ?
                ORDER BY id ASC LIMIT ?
                """,
                (after_id, agent_id, clamp_page_size(limit)),
            )
        else:
            cursor = await self._conn.execute(
                "SELECT * FROM activity_feed WHERE id > ? ORDER BY id ASC LIMIT ?",
                (after_id, clamp_page_size(limit)),
            )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def get_latest_matching(
        self,
        after_id: int,
        event_filter: EventFilter,
    ) -> Event | None:
        """查询 id > after_id 且满足过滤条件的最大 id 事件

        只返回最新一条；更早的匹配事件由调用方推进游标时隐式确认。
        """
        clauses = ["id > ?"]
        params: list = [after_id]
        if event_filter.agent_id is not None:
            clauses.append("agent_id = ?")
            params.append(event_filter.agent_id)
        if event_filter.event_type is not None:
            clauses.append("event_type = ?")
            params.append(event_filter.event_type.value)

        cursor = await self._conn.execute(
            f"SELECT * FROM activity_feed WHERE {' AND '.join(clauses)} "
            "ORDER BY id DESC LIMIT 1",
            params,
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_event(row)

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> Event:
        """将数据库行转换为 Event 模型"""
        return Event(
            id=row["id"],
            agent_id=row["agent_id"],
            agent_name=row["agent_name"],
            event_type=EventType(row["event_type"]),
            title=row["title"],
            detail=row["detail"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
