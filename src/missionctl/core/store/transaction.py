"""写事务封装

同一连接上的写事务由 StoreGroup.write_lock 串行化，并以 BEGIN IMMEDIATE 开启，
保证游标推进与其触发的 store 变更在同一事务内原子提交或一起回滚。
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TYPE_CHECKING

import aiosqlite

from ..exceptions import EventNotFoundError
from ..models.event import Event, EventCreate

if TYPE_CHECKING:
    from . import StoreGroup


@asynccontextmanager
async def transaction(store_group: "StoreGroup") -> AsyncIterator[aiosqlite.Connection]:
    """开启一个写事务，正常退出时提交，异常时回滚并重新抛出

    Args:
        store_group: 共享连接的 Store 实例组

    Yields:
        事务所在的数据库连接
    """
    conn = store_group.conn
    async with store_group.write_lock:
        if not conn.in_transaction:
            await conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise


async def append_activity_event(
    store_group: "StoreGroup",
    data: EventCreate,
    now: datetime | None = None,
) -> Event:
    """单独写入一条活动事件并提交，返回落盘后的事件

    写入后回读失败时抛出 EventNotFoundError，事务回滚。

    Args:
        store_group: Store 实例组
        data: 事件写入请求
        now: 写入时间（测试注入）
    """
    async with transaction(store_group):
        event_id = await store_group.event_store.append_event(data, now=now)
        event = await store_group.event_store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
    return event
