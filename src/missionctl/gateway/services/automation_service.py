"""AutomationService -- 自动化规则

每个 tick 依次检查两个游标消费者：
1. QA 智能体 task_end：批量结算所有 review 任务（通过 -> done，驳回 -> backlog），
   并把 QA、工程负责人以及被结算任务的已知负责人工位重置为 idle
2. 工程负责人 task_end：把工程负责人工位重置为 idle

store 变更与游标推进同事务提交；memory 笔记与通知在提交后以独立任务执行，
至多一次，失败只记录日志。
"""

import asyncio
from collections.abc import Coroutine
from datetime import UTC, datetime

import structlog
from missionctl.core.config import MissionControlConfig
from missionctl.core.consumer import EventCursorConsumer
from missionctl.core.lifecycle import classify_assignee, is_rejection_title
from missionctl.core.models import (
    Event,
    EventFilter,
    EventType,
    KnownAgent,
    ReviewResolution,
    StationStatus,
    StationUpsert,
)
from missionctl.core.store import StoreGroup
from pydantic import BaseModel, Field

from .memory_log import MemoryLog
from .notifier import Notifier

log = structlog.get_logger()

QA_ROLE = "qa"
ENGINEER_ROLE = "engineering"


class AutomationRunResult(BaseModel):
    """一次自动化 tick 的结果"""

    actions: list[str] = Field(default_factory=list)
    review: ReviewResolution | None = None
    review_event_id: int | None = None
    engineer_event_id: int | None = None


class AutomationService:
    """自动化规则执行器"""

    def __init__(
        self,
        store_group: StoreGroup,
        config: MissionControlConfig,
        notifier: Notifier | None = None,
        memory_log: MemoryLog | None = None,
    ) -> None:
        self._stores = store_group
        self._config = config
        self._notifier = notifier
        self._memory_log = memory_log
        self._side_effects: set[asyncio.Task] = set()

        self.review_consumer = EventCursorConsumer(
            store_group,
            "qa-review",
            EventFilter(agent_id=config.qa_agent_id, event_type=EventType.TASK_END),
        )
        self.engineer_consumer = EventCursorConsumer(
            store_group,
            "engineer-done",
            EventFilter(agent_id=config.engineer_agent_id, event_type=EventType.TASK_END),
        )

    async def run_tick(self, now: datetime | None = None) -> AutomationRunResult:
        """执行一次自动化检查"""
        now = now or datetime.now(UTC)
        result = AutomationRunResult()

        async def resolve(event: Event) -> ReviewResolution:
            return await self._apply_review_resolution(event, now)

        consumed = await self.review_consumer.consume(resolve, now=now)
        if consumed is not None:
            event, resolution = consumed
            result.review = resolution
            result.review_event_id = event.id
            verdict = "rejected" if resolution.rejected else "approved"
            if resolution.count:
                target = "backlog" if resolution.rejected else "done"
                result.actions.append(
                    f"Moved {resolution.count} review task(s) to {target} ({verdict})"
                )
                self._schedule_side_effects(resolution, now)
            result.actions.append(f"Cleared {self._config.qa_agent_id} to idle")
            log.info(
                "review_resolution_applied",
                event_id=event.id,
                verdict=verdict,
                task_ids=[task.id for task in resolution.tasks],
            )

        async def reset_engineer(event: Event) -> None:
            await self._reset_station(self._config.engineer_agent_id, ENGINEER_ROLE, now)

        consumed = await self.engineer_consumer.consume(reset_engineer, now=now)
        if consumed is not None:
            event, _ = consumed
            result.engineer_event_id = event.id
            result.actions.append(f"Cleared {self._config.engineer_agent_id} to idle")
            log.info("engineer_completion_applied", event_id=event.id)

        return result

    async def _apply_review_resolution(
        self,
        event: Event,
        now: datetime,
    ) -> ReviewResolution:
        """在消费者事务内执行批量结算与工位重置"""
        rejected = is_rejection_title(event.title, self._config.rejection_markers)
        tasks = await self._stores.task_store.resolve_reviews(rejected, now=now)
        resolution = ReviewResolution(rejected=rejected, tasks=tasks)

        await self._reset_station(self._config.qa_agent_id, QA_ROLE, now)
        if not tasks:
            return resolution

        reset_ids = {self._config.qa_agent_id, self._config.engineer_agent_id}
        await self._reset_station(self._config.engineer_agent_id, ENGINEER_ROLE, now)
        for task in tasks:
            assignee = classify_assignee(task.assignee, self._config.agent_roster)
            if isinstance(assignee, KnownAgent) and assignee.agent_id not in reset_ids:
                reset_ids.add(assignee.agent_id)
                await self._reset_station(assignee.agent_id, None, now)
        return resolution

    async def _reset_station(self, agent_id: str, role: str | None, now: datetime) -> None:
        await self._stores.office_store.upsert_station(
            StationUpsert(
                agent_id=agent_id,
                agent_name=self._config.agent_name(agent_id),
                role=role,
                current_task="",
                status=StationStatus.IDLE,
            ),
            now=now,
        )

    def _schedule_side_effects(self, resolution: ReviewResolution, now: datetime) -> None:
        qa_name = self._config.agent_name(self._config.qa_agent_id)
        if resolution.rejected:
            note = f"- ❌ {qa_name} rejected: {resolution.count} task(s) returned to backlog"
        else:
            note = f"- ✅ {qa_name} approved: {resolution.count} task(s) moved to done"

        if self._memory_log is not None:
            date = self._memory_log.local_date(now)
            self._spawn(self._memory_log.append_note(f"{note} ({date})", now=now))
        if self._notifier is not None and self._notifier.enabled:
            titles = ", ".join(task.title for task in resolution.tasks)
            self._spawn(self._notifier.notify(f"{note}: {titles}"))

    def _spawn(self, coro: Coroutine) -> None:
        task = asyncio.create_task(coro)
        self._side_effects.add(task)
        task.add_done_callback(self._on_side_effect_done)

    def _on_side_effect_done(self, task: asyncio.Task) -> None:
        self._side_effects.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.warning("side_effect_failed", error=str(exc))

    async def wait_for_side_effects(self) -> None:
        """等待已调度的副作用结束（关闭与测试时使用）"""
        if self._side_effects:
            await asyncio.gather(*self._side_effects, return_exceptions=True)
