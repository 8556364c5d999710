"""Cursor Domain Model

每个逻辑消费者一行，value 为最后处理的事件 id，单调不减。
"""

from datetime import datetime

from pydantic import BaseModel, Field


class Cursor(BaseModel):
    """事件消费游标"""

    key: str = Field(description="消费者 + 过滤条件标识")
    value: int = Field(default=0, ge=0, description="最后处理的事件 id")
    updated_at: datetime | None = Field(default=None, description="最后推进时间")
