"""TaskService -- 任务创建/更新/归档业务逻辑

人工更新按 id 或标题子串定位任务，状态流转与 rejection_count 在 lifecycle 层校验，
review -> backlog 的人工驳回同样累加 rejection_count。
"""

from datetime import UTC, datetime

import structlog
from missionctl.core.exceptions import TaskNotFoundError
from missionctl.core.lifecycle import plan_task_update
from missionctl.core.models import Task, TaskCreate, TaskUpdate
from missionctl.core.store import StoreGroup, transaction

log = structlog.get_logger()


class TaskService:
    """任务业务服务"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def create_task(self, data: TaskCreate, now: datetime | None = None) -> Task:
        """创建任务（外部提交入口）"""
        async with transaction(self._stores):
            task_id = await self._stores.task_store.create_task(data, now=now)
            task = await self._stores.task_store.get_task(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
        log.info("task_created", task_id=task.id, status=task.status, assignee=task.assignee)
        return task

    async def update_task(
        self,
        update: TaskUpdate,
        task_id: int | None = None,
        title_match: str | None = None,
        now: datetime | None = None,
    ) -> Task:
        """按 id 或标题子串更新任务

        Raises:
            TaskNotFoundError: 未命中任务
            InvalidTransitionError: 状态流转不合法
            RejectionCountDecreaseError: rejection_count 被调小
            RejectionCountChangeError: rejection_count 在驳回流转之外被修改
        """
        now = now or datetime.now(UTC)
        task_store = self._stores.task_store
        async with transaction(self._stores):
            if task_id is not None:
                task = await task_store.get_task(task_id)
            elif title_match:
                task = await task_store.find_by_title(title_match)
            else:
                raise ValueError("task_id or title_match is required")
            if task is None:
                raise TaskNotFoundError(task_id if task_id is not None else title_match)

            fields = plan_task_update(task, update)
            if fields:
                await task_store.update_task(task.id, fields, now=now)
            updated = await task_store.get_task(task.id)
            if updated is None:
                raise TaskNotFoundError(task.id)

        if fields:
            log.info(
                "task_updated",
                task_id=task.id,
                from_status=task.status,
                to_status=updated.status,
                fields=sorted(fields),
            )
        return updated

    async def list_tasks(self, status: str | None = None) -> list[Task]:
        return await self._stores.readers.task_store.list_tasks(status)

    async def archive_done(self, now: datetime | None = None) -> int:
        """把 done 任务移入 completed_tasks"""
        async with transaction(self._stores):
            archived = await self._stores.task_store.archive_done(now=now)
        log.info("tasks_archived", count=archived)
        return archived
