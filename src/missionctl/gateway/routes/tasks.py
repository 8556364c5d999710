"""任务路由

GET /api/tasks: 任务列表，支持 status 筛选。
GET /api/tasks/by-assignee: 按负责人分组（已知智能体 / 未知负责人）。
POST /api/tasks: 外部提交新任务。
PATCH /api/tasks: 按 id 或 title_match 部分更新。
- 404: 任务不存在
- 409: 状态流转不合法，或 rejection_count 被调小、在驳回流转之外被修改
POST /api/tasks/archive: 把 done 任务移入 completed_tasks。
"""

from fastapi import APIRouter, Depends, Query
from missionctl.core.exceptions import (
    InvalidTransitionError,
    RejectionCountChangeError,
    RejectionCountDecreaseError,
    TaskNotFoundError,
)
from missionctl.core.lifecycle import group_tasks_by_assignee
from missionctl.core.models import Task, TaskCreate, TaskStatus, TaskUpdate
from pydantic import BaseModel, Field, model_validator

from ..deps import error_response, get_config, get_store_group
from ..services.task_service import TaskService

router = APIRouter()


class TaskPatchRequest(TaskUpdate):
    """PATCH 请求体：id 与 title_match 至少提供一个"""

    id: int | None = Field(default=None, ge=1)
    title_match: str | None = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _require_selector(self) -> "TaskPatchRequest":
        if self.id is None and not self.title_match:
            raise ValueError("id or title_match is required")
        return self

    def to_update(self) -> TaskUpdate:
        return TaskUpdate.model_validate(self.model_dump(exclude={"id", "title_match"}))


class AssigneeGroup(BaseModel):
    """一个负责人的任务分组"""

    assignee: str
    agent_name: str | None = None
    known: bool
    tasks: list[Task]


class ArchiveResponse(BaseModel):
    archived: int


@router.get("/api/tasks", response_model=list[Task])
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    store_group=Depends(get_store_group),
):
    """查询任务列表，按 id 倒序"""
    service = TaskService(store_group)
    return await service.list_tasks(status.value if status else None)


@router.get("/api/tasks/by-assignee", response_model=list[AssigneeGroup])
async def list_tasks_by_assignee(
    store_group=Depends(get_store_group),
    config=Depends(get_config),
):
    """按负责人分组；已知智能体在前，按名册顺序排列"""
    service = TaskService(store_group)
    tasks = await service.list_tasks()
    known, unknown = group_tasks_by_assignee(tasks, config.agent_roster)

    groups = [
        AssigneeGroup(
            assignee=agent_id,
            agent_name=config.agent_roster[agent_id],
            known=True,
            tasks=known[agent_id],
        )
        for agent_id in config.agent_roster
        if agent_id in known
    ]
    groups.extend(
        AssigneeGroup(assignee=raw, known=False, tasks=items)
        for raw, items in sorted(unknown.items())
    )
    return groups


@router.post("/api/tasks", status_code=201, response_model=Task)
async def create_task(
    body: TaskCreate,
    store_group=Depends(get_store_group),
):
    """外部提交新任务"""
    service = TaskService(store_group)
    return await service.create_task(body)


@router.patch("/api/tasks", response_model=Task)
async def update_task(
    body: TaskPatchRequest,
    store_group=Depends(get_store_group),
):
    """按 id 或标题子串（多条命中取最新）部分更新任务"""
    service = TaskService(store_group)
    try:
        return await service.update_task(
            body.to_update(),
            task_id=body.id,
            title_match=body.title_match,
        )
    except TaskNotFoundError as e:
        return error_response(404, "TASK_NOT_FOUND", str(e))
    except InvalidTransitionError as e:
        return error_response(409, "INVALID_TRANSITION", str(e))
    except RejectionCountDecreaseError as e:
        return error_response(409, "REJECTION_COUNT_DECREASE", str(e))
    except RejectionCountChangeError as e:
        return error_response(409, "REJECTION_COUNT_LOCKED", str(e))


@router.post("/api/tasks/archive", response_model=ArchiveResponse)
async def archive_tasks(
    store_group=Depends(get_store_group),
):
    """归档所有 done 任务"""
    service = TaskService(store_group)
    archived = await service.archive_done()
    return ArchiveResponse(archived=archived)
