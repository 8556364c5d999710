"""OfficeStation / SessionSnapshot Domain Model

office_status 每个 agent 一行，只 upsert 不删除。
SessionSnapshot 来自外部会话来源，每个 tick 重新拉取，不落盘。
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from .enums import SessionStatus, StationStatus


class OfficeStation(BaseModel):
    """智能体工位的最后已知状态"""

    agent_id: str = Field(description="唯一键")
    agent_name: str = Field(description="显示名")
    role: str = Field(default="", description="角色")
    current_task: str = Field(default="", description="当前任务（自由文本）")
    status: StationStatus = Field(default=StationStatus.IDLE, description="存储状态")
    updated_at: datetime = Field(description="最后写入时间")

    def effective_status(self, now: datetime, stale_after: timedelta) -> StationStatus:
        """读取时的状态修正

        working 超过 stale_after 未刷新视为 idle；不回写数据库。
        """
        if self.status == StationStatus.WORKING and now - self.updated_at > stale_after:
            return StationStatus.IDLE
        return self.status


class StationUpsert(BaseModel):
    """工位 upsert，None 字段保留原值"""

    agent_id: str = Field(min_length=1)
    agent_name: str | None = None
    role: str | None = None
    current_task: str | None = None
    status: StationStatus | None = None


class SessionSnapshot(BaseModel):
    """外部会话快照（只读，不持久化）"""

    agent_id: str = Field(min_length=1)
    agent_name: str = Field(default="")
    status: SessionStatus


class ReconcileResult(BaseModel):
    """一次对账的写入统计"""

    set_working: list[str] = Field(default_factory=list)
    set_idle: list[str] = Field(default_factory=list)
    created: list[str] = Field(default_factory=list)
    skipped: bool = Field(default=False, description="来源失败或结果为空，本 tick 未写入")
    error: str | None = Field(default=None, description="来源失败时的错误描述")

    @property
    def write_count(self) -> int:
        return len(self.set_working) + len(self.set_idle) + len(self.created)
