"""Event Domain Model

activity_feed 表 append-only，不允许更新或删除。
id 自增且严格单调，是消费者唯一可依赖的顺序。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import EventType


class Event(BaseModel):
    """已落盘的活动事件"""

    id: int = Field(description="自增 ID，严格单调递增")
    agent_id: str = Field(description="产生事件的智能体")
    agent_name: str = Field(description="智能体显示名")
    event_type: EventType = Field(description="事件类型")
    title: str = Field(description="事件标题")
    detail: str | None = Field(default=None, description="可选详情")
    created_at: datetime = Field(description="写入时间")


class EventCreate(BaseModel):
    """事件写入请求 -- 缺字段或未知 event_type 直接拒绝"""

    agent_id: str = Field(min_length=1)
    agent_name: str = Field(min_length=1)
    event_type: EventType
    title: str = Field(min_length=1)
    detail: str | None = None


class EventFilter(BaseModel):
    """消费者过滤条件，None 表示不限制该字段"""

    agent_id: str | None = None
    event_type: EventType | None = None

    def describe(self) -> str:
        """用于拼接 cursor key 的稳定描述"""
        agent = self.agent_id or "*"
        event_type = self.event_type.value if self.event_type else "*"
        return f"{agent}:{event_type}"
