"""Task Domain Model

tasks 表由外部提交创建，经 UI 操作与自动化消费者修改；
只有显式归档动作会把 done 任务移入 completed_tasks。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import TaskPriority, TaskStatus


class Task(BaseModel):
    """Task 数据模型

    rejection_count 只增不减，且只在 review -> backlog 流转时增加。
    """

    id: int = Field(description="自增主键，单调分配")
    title: str = Field(description="任务标题")
    description: str = Field(default="", description="任务描述")
    assignee: str = Field(default="me", description="负责人（自由文本）")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    status: TaskStatus = Field(default=TaskStatus.BACKLOG, description="当前状态")
    rejection_count: int = Field(default=0, ge=0, description="被 QA 驳回次数")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")


class TaskCreate(BaseModel):
    """外部提交的新任务"""

    title: str = Field(min_length=1, description="任务标题")
    description: str = Field(default="")
    assignee: str = Field(default="me")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    status: TaskStatus = Field(default=TaskStatus.BACKLOG)


class TaskUpdate(BaseModel):
    """任务部分更新，None 字段保持不变"""

    status: TaskStatus | None = None
    assignee: str | None = None
    priority: TaskPriority | None = None
    description: str | None = None
    rejection_count: int | None = Field(default=None, ge=0)


class ReviewResolution(BaseModel):
    """一次批量 review 结算的结果"""

    rejected: bool = Field(description="True 为驳回（-> backlog），False 为通过（-> done）")
    tasks: list[Task] = Field(default_factory=list, description="被结算的任务（结算前快照）")

    @property
    def count(self) -> int:
        return len(self.tasks)
