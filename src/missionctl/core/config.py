"""配置模块 -- 可通过环境变量覆盖

包含数据库路径、memory 日志目录、轮询间隔、智能体身份（QA / 工程 / 主智能体别名）
以及 staleness 阈值等可配置项。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("MISSIONCTL_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "MISSIONCTL_DB_PATH",
        str(_get_base_dir() / "sqlite" / "missionctl.db"),
    )


def get_memory_dir() -> Path:
    """获取每日 memory 日志目录"""
    return Path(
        os.environ.get(
            "MISSIONCTL_MEMORY_DIR",
            str(_get_base_dir() / "memory"),
        )
    )


# 事件分页默认/最大条数
EVENT_PAGE_DEFAULT: int = 50
EVENT_PAGE_MAX: int = 200

# SSE 心跳间隔默认值（秒），运行时以 load_config() 为准
SSE_HEARTBEAT_INTERVAL: float = 15.0

# working 状态超过此秒数未刷新，读取时视为 idle
STALE_WORKING_SECONDS: int = 600

# 默认智能体名册（agent_id -> 显示名）
DEFAULT_AGENT_ROSTER: dict[str, str] = {
    "babbage": "Babbage",
    "code-monkey": "Code Monkey",
    "answring": "Answring Manager",
    "hustle": "Hustle",
    "roadie": "Roadie",
    "ralph": "Ralph",
    "tldr": "TLDR",
    "browser": "Browser Agent",
    "comms": "Comms Agent",
    "code-frontend": "Code Frontend",
    "code-backend": "Code Backend",
    "code-devops": "Code DevOps",
}

DEFAULT_REJECTION_MARKERS: tuple[str, ...] = ("rejected", "❌")


class MissionControlConfig(BaseModel):
    """运行时配置 -- 从环境变量加载

    环境变量:
        MISSIONCTL_SESSION_SOURCE_URL: 会话快照来源地址
        MISSIONCTL_NOTIFY_URL: 通知 webhook 地址（为空则不发送）
        MISSIONCTL_QA_AGENT_ID / MISSIONCTL_ENGINEER_AGENT_ID: 自动化规则关注的智能体
        MISSIONCTL_MAIN_AGENT_ALIAS / _ID / _NAME: 主智能体别名映射
        MISSIONCTL_*_INTERVAL_S / MISSIONCTL_TICK_TIMEOUT_S: 轮询节奏
        MISSIONCTL_SSE_HEARTBEAT_INTERVAL: SSE 心跳间隔（秒）
        MISSIONCTL_STALE_WORKING_SECONDS: working 状态过期阈值（秒）
    """

    session_source_url: str = Field(
        default="http://localhost:3001/api/sessions",
        description="会话快照接口 URL",
    )
    session_source_timeout_s: float = Field(default=5.0, gt=0)
    notify_url: str = Field(default="", description="通知 webhook，空字符串表示关闭")
    notify_timeout_s: float = Field(default=10.0, gt=0)
    memory_timezone: str = Field(default="UTC", description="memory 日志日期所用时区")

    qa_agent_id: str = Field(default="ralph", description="QA 审核智能体")
    engineer_agent_id: str = Field(default="code-monkey", description="工程负责人智能体")
    main_agent_alias: str = Field(default="main", description="会话来源中主智能体的别名")
    main_agent_id: str = Field(default="babbage", description="主智能体的稳定标识")
    main_agent_name: str = Field(default="Babbage")
    agent_roster: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_AGENT_ROSTER),
    )
    rejection_markers: tuple[str, ...] = Field(default=DEFAULT_REJECTION_MARKERS)

    automation_interval_s: float = Field(default=15.0, gt=0)
    reconcile_interval_s: float = Field(default=15.0, gt=0)
    tick_timeout_s: float = Field(default=10.0, gt=0)
    loops_enabled: bool = Field(default=True, description="是否在 lifespan 中启动轮询")
    stale_working_seconds: int = Field(default=STALE_WORKING_SECONDS, ge=1)
    sse_heartbeat_interval_s: float = Field(default=SSE_HEARTBEAT_INTERVAL, gt=0)

    @property
    def alias_map(self) -> dict[str, str]:
        """会话来源别名 -> 稳定 agent_id"""
        return {self.main_agent_alias: self.main_agent_id}

    def agent_name(self, agent_id: str) -> str:
        """根据名册解析显示名，未登记时回退为 agent_id"""
        if agent_id == self.main_agent_id:
            return self.main_agent_name
        return self.agent_roster.get(agent_id, agent_id)


def _parse_roster(raw: str) -> dict[str, str]:
    """解析 "id:Name,id:Name" 格式的名册"""
    roster: dict[str, str] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        agent_id, _, name = item.partition(":")
        agent_id = agent_id.strip()
        if agent_id:
            roster[agent_id] = name.strip() or agent_id
    return roster


_FLOAT_VARS = {
    "MISSIONCTL_SSE_HEARTBEAT_INTERVAL": "sse_heartbeat_interval_s",
    "MISSIONCTL_SESSION_SOURCE_TIMEOUT_S": "session_source_timeout_s",
    "MISSIONCTL_NOTIFY_TIMEOUT_S": "notify_timeout_s",
    "MISSIONCTL_AUTOMATION_INTERVAL_S": "automation_interval_s",
    "MISSIONCTL_RECONCILE_INTERVAL_S": "reconcile_interval_s",
    "MISSIONCTL_TICK_TIMEOUT_S": "tick_timeout_s",
}

_STR_VARS = {
    "MISSIONCTL_SESSION_SOURCE_URL": "session_source_url",
    "MISSIONCTL_NOTIFY_URL": "notify_url",
    "MISSIONCTL_MEMORY_TZ": "memory_timezone",
    "MISSIONCTL_QA_AGENT_ID": "qa_agent_id",
    "MISSIONCTL_ENGINEER_AGENT_ID": "engineer_agent_id",
    "MISSIONCTL_MAIN_AGENT_ALIAS": "main_agent_alias",
    "MISSIONCTL_MAIN_AGENT_ID": "main_agent_id",
    "MISSIONCTL_MAIN_AGENT_NAME": "main_agent_name",
}


def _positive_from_env(env_var: str, convert):
    """读取正数环境变量；未设置返回 None，非法或非正值记录 warning 后返回 None"""
    val = os.environ.get(env_var)
    if not val:
        return None
    try:
        number = convert(val)
    except ValueError:
        number = None
    if number is None or not number > 0:
        log.warning("invalid_numeric_config", env_var=env_var, value=val)
        return None
    return number


def load_config() -> MissionControlConfig:
    """从环境变量加载运行时配置

    数值非法或不为正时记录 warning 并使用默认值，不阻塞启动。

    Returns:
        MissionControlConfig 实例
    """
    kwargs: dict = {}

    for env_var, field in _STR_VARS.items():
        if val := os.environ.get(env_var):
            kwargs[field] = val

    for env_var, field in _FLOAT_VARS.items():
        number = _positive_from_env(env_var, float)
        if number is not None:
            kwargs[field] = number

    stale = _positive_from_env("MISSIONCTL_STALE_WORKING_SECONDS", int)
    if stale is not None:
        kwargs["stale_working_seconds"] = stale

    if val := os.environ.get("MISSIONCTL_LOOPS_ENABLED"):
        kwargs["loops_enabled"] = val.strip().lower() not in ("0", "false", "no", "off")

    if val := os.environ.get("MISSIONCTL_AGENT_ROSTER"):
        roster = _parse_roster(val)
        if roster:
            kwargs["agent_roster"] = roster

    if val := os.environ.get("MISSIONCTL_REJECTION_MARKERS"):
        markers = tuple(m.strip() for m in val.split(",") if m.strip())
        if markers:
            kwargs["rejection_markers"] = markers

    return MissionControlConfig(**kwargs)
