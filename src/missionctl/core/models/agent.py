"""负责人分类结果 -- KnownAgent | UnknownAssignee

看板分组与自动化重置都通过 classify_assignee() 得到此 tagged union，
不在各处散落字符串匹配。
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field


class KnownAgent(BaseModel):
    """名册内的智能体"""

    kind: Literal["known"] = "known"
    agent_id: str
    agent_name: str


class UnknownAssignee(BaseModel):
    """名册外的负责人（人工、已下线智能体、拼写错误等）"""

    kind: Literal["unknown"] = "unknown"
    raw: str


AssigneeClass = Annotated[KnownAgent | UnknownAssignee, Field(discriminator="kind")]
