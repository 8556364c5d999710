"""Mission Control 异常体系

领域校验错误（映射为 4xx）与外部依赖瞬时错误（吞掉并记录日志）。
"""


class MissionControlError(Exception):
    """基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可在下一个 tick 自然恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class TaskNotFoundError(MissionControlError):
    """任务不存在（按 id 或标题子串都未命中）"""

    def __init__(self, identifier: int | str) -> None:
        super().__init__(f"Task {identifier!r} does not exist")
        self.identifier = identifier


class InvalidTransitionError(MissionControlError):
    """任务状态流转不合法"""

    def __init__(self, from_status: str, to_status: str) -> None:
        super().__init__(f"Cannot transition task from {from_status} to {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class RejectionCountDecreaseError(MissionControlError):
    """rejection_count 只能增加"""

    def __init__(self, current: int, requested: int) -> None:
        super().__init__(
            f"rejection_count cannot decrease (current={current}, requested={requested})"
        )
        self.current = current
        self.requested = requested


class SessionSourceError(MissionControlError):
    """会话快照来源返回异常响应（非 2xx、payload 非法）

    对账方收到此异常时本 tick 不做任何写入。
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=True)


class SessionSourceUnreachableError(SessionSourceError):
    """会话快照来源不可达（连接失败、超时等）"""

    def __init__(self, url: str, original_error: Exception) -> None:
        super().__init__(f"Session source unreachable: {url} -- {original_error}")
        self.url = url
        self.original_error = original_error


class EventNotFoundError(MissionControlError):
    """事件不存在"""

    def __init__(self, event_id: int) -> None:
        super().__init__(f"Event {event_id} does not exist")
        self.event_id = event_id


class RejectionCountChangeError(MissionControlError):
    """rejection_count 只随 review -> backlog 加 1"""

    def __init__(self, current: int, requested: int) -> None:
        super().__init__(
            "rejection_count only changes by +1 on a review -> backlog transition "
            f"(current={current}, requested={requested})"
        )
        self.current = current
        self.requested = requested
