"""Mission Control Core Store -- SQLite 持久化实现

提供工厂函数创建 Store 实例组：写路径共享一个连接与写锁，读路径使用独立的只读连接。
"""

import asyncio
from pathlib import Path

import aiosqlite

from .cursor_store import SqliteCursorStore
from .event_store import SqliteEventStore
from .office_store import SqliteOfficeStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore
from .transaction import append_activity_event, transaction


class StoreReaders:
    """只读 Store 视图 -- 绑定独立的 query_only 连接

    WAL 模式下读连接只看到已提交的数据，写事务进行中（或随后回滚）的变更不可见。
    看板查询、SSE 补发与 CLI 列表走这里。
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.event_store = SqliteEventStore(conn)
        self.cursor_store = SqliteCursorStore(conn)
        self.task_store = SqliteTaskStore(conn)
        self.office_store = SqliteOfficeStore(conn)


class StoreGroup:
    """Store 实例组 -- 写连接 + 写锁，以及独立读连接上的只读视图"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        read_conn: aiosqlite.Connection,
    ) -> None:
        self.conn = conn
        self.write_lock = asyncio.Lock()
        self.event_store = SqliteEventStore(conn)
        self.cursor_store = SqliteCursorStore(conn)
        self.task_store = SqliteTaskStore(conn)
        self.office_store = SqliteOfficeStore(conn)
        self.readers = StoreReaders(read_conn)

    async def close(self) -> None:
        """关闭读写两个连接"""
        await self.readers.conn.close()
        await self.conn.close()


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    先用写连接完成建表与 WAL 设置，再打开 query_only 的读连接。

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    read_conn = await aiosqlite.connect(db_path)
    read_conn.row_factory = aiosqlite.Row
    await read_conn.execute("PRAGMA busy_timeout = 5000;")
    await read_conn.execute("PRAGMA query_only = ON;")

    return StoreGroup(conn=conn, read_conn=read_conn)


__all__ = [
    "StoreGroup",
    "StoreReaders",
    "create_store_group",
    "SqliteEventStore",
    "SqliteCursorStore",
    "SqliteTaskStore",
    "SqliteOfficeStore",
    "init_db",
    "transaction",
    "append_activity_event",
]
