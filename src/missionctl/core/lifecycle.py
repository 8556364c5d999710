"""任务生命周期规则

驳回判定、负责人分类、人工更新校验都集中在这里，
自动化消费者与 HTTP 层共用同一套纯函数。
"""

from collections.abc import Iterable, Mapping

from .exceptions import (
    InvalidTransitionError,
    RejectionCountChangeError,
    RejectionCountDecreaseError,
)
from .models.agent import AssigneeClass, KnownAgent, UnknownAssignee
from .models.enums import is_rejection_transition, validate_transition
from .models.task import Task, TaskUpdate


def is_rejection_title(title: str, markers: Iterable[str]) -> bool:
    """QA 事件标题是否表示驳回（不区分大小写的子串匹配）"""
    lowered = title.lower()
    return any(marker.lower() in lowered for marker in markers if marker)


def classify_assignee(assignee: str, roster: Mapping[str, str]) -> AssigneeClass:
    """把自由文本负责人归类为名册内智能体或未知负责人

    先按 agent_id 精确匹配，再按显示名不区分大小写匹配。
    """
    raw = assignee.strip()
    if raw in roster:
        return KnownAgent(agent_id=raw, agent_name=roster[raw])
    lowered = raw.lower()
    for agent_id, agent_name in roster.items():
        if agent_id.lower() == lowered or agent_name.lower() == lowered:
            return KnownAgent(agent_id=agent_id, agent_name=agent_name)
    return UnknownAssignee(raw=assignee)


def group_tasks_by_assignee(
    tasks: Iterable[Task],
    roster: Mapping[str, str],
) -> tuple[dict[str, list[Task]], dict[str, list[Task]]]:
    """按负责人分组

    Returns:
        (已知智能体 agent_id -> 任务列表, 未知负责人原文 -> 任务列表)
    """
    known: dict[str, list[Task]] = {}
    unknown: dict[str, list[Task]] = {}
    for task in tasks:
        assignee = classify_assignee(task.assignee, roster)
        if isinstance(assignee, KnownAgent):
            known.setdefault(assignee.agent_id, []).append(task)
        else:
            unknown.setdefault(assignee.raw, []).append(task)
    return known, unknown


def plan_task_update(task: Task, update: TaskUpdate) -> dict:
    """校验人工更新并生成要写入的列

    rejection_count 只在 review -> backlog 时加 1：请求中的值可以省略或等于加 1 后的值，
    其他改动一律拒绝。

    Raises:
        InvalidTransitionError: 状态流转不合法
        RejectionCountDecreaseError: rejection_count 被调小
        RejectionCountChangeError: 非驳回流转中修改 rejection_count，或驳回时不是加 1
    """
    fields = update.model_dump(exclude_none=True)
    requested_count = fields.pop("rejection_count", None)
    if requested_count is not None and requested_count < task.rejection_count:
        raise RejectionCountDecreaseError(task.rejection_count, requested_count)

    new_status = update.status
    rejecting = False
    if new_status is None or new_status == task.status:
        # 同状态视为未修改
        fields.pop("status", None)
    elif not validate_transition(task.status, new_status):
        raise InvalidTransitionError(task.status.value, new_status.value)
    else:
        rejecting = is_rejection_transition(task.status, new_status)

    if rejecting:
        next_count = task.rejection_count + 1
        if requested_count is not None and requested_count != next_count:
            raise RejectionCountChangeError(task.rejection_count, requested_count)
        fields["rejection_count"] = next_count
    elif requested_count is not None and requested_count != task.rejection_count:
        raise RejectionCountChangeError(task.rejection_count, requested_count)
    return fields
