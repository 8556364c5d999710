"""事件游标消费者

每个逻辑消费者（名称 + 过滤条件）在 automation_cursors 中持有一个游标。
每次检查只取游标之后最新的一条匹配事件，并把游标直接推进到它的 id；
更早的匹配事件被跳过。下游动作必须是批量且可收敛的，才能接受这种跳跃。
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

import structlog

from .models.event import Event, EventFilter
from .store import StoreGroup
from .store.transaction import transaction

log = structlog.get_logger()

T = TypeVar("T")


class EventCursorConsumer:
    """基于游标的幂等事件消费者

    游标推进与 consume() 的动作在同一事务内提交；动作失败时游标一起回滚，
    下一个 tick 会重新看到同一事件。
    """

    def __init__(self, store_group: StoreGroup, name: str, event_filter: EventFilter) -> None:
        self._stores = store_group
        self._filter = event_filter
        self.key = f"{name}:{event_filter.describe()}"

    async def check_and_advance(self, now: datetime | None = None) -> Event | None:
        """取出游标之后最新的匹配事件并推进游标

        Returns:
            新事件；没有新事件或游标已被其他轮询者推进时返回 None
        """
        async with transaction(self._stores):
            return await self._advance(now)

    async def consume(
        self,
        action: Callable[[Event], Awaitable[T]],
        now: datetime | None = None,
    ) -> tuple[Event, T] | None:
        """推进游标并在同一事务内执行动作

        Args:
            action: 接收新事件的协程函数，只能使用 store_group 上的 store（不得自行提交）
            now: 写入时间（测试注入）

        Returns:
            (事件, 动作返回值)；没有新事件时返回 None
        """
        async with transaction(self._stores):
            event = await self._advance(now)
            if event is None:
                return None
            result = await action(event)
            return event, result

    async def _advance(self, now: datetime | None) -> Event | None:
        cursor_value = await self._stores.cursor_store.get_cursor(self.key)
        event = await self._stores.event_store.get_latest_matching(cursor_value, self._filter)
        if event is None:
            return None

        advanced = await self._stores.cursor_store.compare_and_set(
            self.key,
            expected=cursor_value,
            new_value=event.id,
            now=now,
        )
        if not advanced:
            log.warning(
                "consumer_cursor_conflict",
                consumer_key=self.key,
                expected=cursor_value,
                event_id=event.id,
            )
            return None

        log.debug(
            "consumer_cursor_advanced",
            consumer_key=self.key,
            from_value=cursor_value,
            to_value=event.id,
        )
        return event
