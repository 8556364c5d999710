"""游标消费者测试

测试内容：
1. 只返回游标之后最新的一条匹配事件，游标直接跳到它的 id
2. 日志未变化时第二次检查不返回事件、不做任何变更
3. compare-and-set：过期的 expected 不写入，游标不能后退
4. consume 的动作失败时游标与动作变更一起回滚
5. 只读连接看不到事务进行中尚未提交的写入
"""

import asyncio

import pytest
from missionctl.core.consumer import EventCursorConsumer
from missionctl.core.models import EventFilter, EventType, TaskStatus
from missionctl.core.store import transaction


@pytest.fixture
def qa_consumer(store_group):
    return EventCursorConsumer(
        store_group,
        "qa-review",
        EventFilter(agent_id="ralph", event_type=EventType.TASK_END),
    )


class TestCheckAndAdvance:
    """check_and_advance"""

    async def test_empty_log_returns_none(self, store_group, qa_consumer):
        assert await qa_consumer.check_and_advance() is None
        assert await store_group.cursor_store.get_cursor(qa_consumer.key) == 0

    async def test_surfaces_only_newest_event(self, store_group, qa_consumer, add_event):
        await add_event("ralph", title="first")
        await add_event("ralph", title="second")
        newest = await add_event("ralph", title="third")

        event = await qa_consumer.check_and_advance()
        assert event.id == newest
        assert await store_group.cursor_store.get_cursor(qa_consumer.key) == newest

    async def test_second_call_on_unchanged_log_is_noop(
        self, store_group, qa_consumer, add_event
    ):
        await add_event("ralph")
        assert await qa_consumer.check_and_advance() is not None

        cursors_before = await store_group.cursor_store.list_cursors()
        assert await qa_consumer.check_and_advance() is None
        assert await store_group.cursor_store.list_cursors() == cursors_before

    async def test_non_matching_events_ignored(self, store_group, qa_consumer, add_event):
        await add_event("ralph", EventType.MESSAGE)
        await add_event("code-monkey", EventType.TASK_END)

        assert await qa_consumer.check_and_advance() is None

    async def test_cursor_key_includes_filter(self, qa_consumer):
        assert qa_consumer.key == "qa-review:ralph:task_end"


class TestCompareAndSet:
    """compare_and_set"""

    async def test_stale_expected_does_not_write(self, store_group):
        cursor_store = store_group.cursor_store
        async with transaction(store_group):
            assert await cursor_store.compare_and_set("k", expected=0, new_value=5)
        async with transaction(store_group):
            assert not await cursor_store.compare_and_set("k", expected=0, new_value=7)
            assert not await cursor_store.compare_and_set("k", expected=3, new_value=7)
        assert await cursor_store.get_cursor("k") == 5

    async def test_cursor_cannot_move_backwards(self, store_group):
        with pytest.raises(ValueError):
            await store_group.cursor_store.compare_and_set("k", expected=5, new_value=5)
        with pytest.raises(ValueError):
            await store_group.cursor_store.compare_and_set("k", expected=5, new_value=2)

    async def test_losing_poller_returns_none(self, store_group, qa_consumer, add_event):
        """另一个轮询者在读游标后抢先推进，本次检查放弃"""
        event_id = await add_event("ralph")

        original = store_group.cursor_store.get_cursor

        async def racing_get_cursor(key: str) -> int:
            value = await original(key)
            # 模拟另一个进程在读与写之间推进了游标
            await store_group.conn.execute(
                "INSERT INTO automation_cursors (key, value, updated_at) VALUES (?, ?, ?)",
                (key, event_id, "2026-03-01T00:00:00+00:00"),
            )
            return value

        store_group.cursor_store.get_cursor = racing_get_cursor
        try:
            assert await qa_consumer.check_and_advance() is None
        finally:
            store_group.cursor_store.get_cursor = original

        assert await store_group.cursor_store.get_cursor(qa_consumer.key) == event_id


class TestConsume:
    """consume：游标推进与动作同事务"""

    async def test_action_result_returned(self, store_group, qa_consumer, add_event):
        event_id = await add_event("ralph", title="ok")

        async def action(event):
            return event.title.upper()

        consumed = await qa_consumer.consume(action)
        event, result = consumed
        assert event.id == event_id
        assert result == "OK"

    async def test_action_failure_rolls_back_cursor_and_writes(
        self, store_group, qa_consumer, add_event, add_task
    ):
        task_id = await add_task("needs review", TaskStatus.REVIEW)
        event_id = await add_event("ralph")

        async def failing_action(event):
            await store_group.task_store.resolve_reviews(rejected=False)
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await qa_consumer.consume(failing_action)

        assert await store_group.cursor_store.get_cursor(qa_consumer.key) == 0
        task = await store_group.task_store.get_task(task_id)
        assert task.status == TaskStatus.REVIEW

        # 下一个 tick 重新看到同一事件
        async def noop(event):
            return None

        event, _ = await qa_consumer.consume(noop)
        assert event.id == event_id

    async def test_no_event_skips_action(self, qa_consumer):
        called = False

        async def action(event):
            nonlocal called
            called = True

        assert await qa_consumer.consume(action) is None
        assert called is False

    async def test_readers_do_not_see_uncommitted_writes(
        self, store_group, qa_consumer, add_event, add_task
    ):
        await add_task("needs review", TaskStatus.REVIEW)
        await add_event("ralph")
        paused = asyncio.Event()
        release = asyncio.Event()

        async def slow_failing_action(event):
            await store_group.task_store.resolve_reviews(rejected=False)
            paused.set()
            await release.wait()
            raise RuntimeError("boom")

        pending = asyncio.create_task(qa_consumer.consume(slow_failing_action))
        await asyncio.wait_for(paused.wait(), timeout=5)

        # 写事务仍未结束：只读视图保持已提交状态
        tasks = await store_group.readers.task_store.list_tasks()
        assert [t.status for t in tasks] == [TaskStatus.REVIEW]
        assert await store_group.readers.cursor_store.list_cursors() == []

        release.set()
        with pytest.raises(RuntimeError):
            await pending

        tasks = await store_group.readers.task_store.list_tasks()
        assert [t.status for t in tasks] == [TaskStatus.REVIEW]
