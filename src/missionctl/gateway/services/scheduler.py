"""PeriodicTask -- 固定间隔轮询循环

每个 tick 带超时执行；超时或失败只记录日志并跳过，不在本 tick 内重试。
stop() 取消循环并等待其退出。
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

import structlog

log = structlog.get_logger()


class PeriodicTask:
    """在后台按固定间隔执行协程函数"""

    def __init__(
        self,
        name: str,
        func: Callable[[], Awaitable[object]],
        interval_s: float,
        tick_timeout_s: float,
    ) -> None:
        self.name = name
        self._func = func
        self._interval_s = interval_s
        self._tick_timeout_s = tick_timeout_s
        self._task: asyncio.Task | None = None
        self.ticks = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"periodic:{self.name}")
        log.info("periodic_task_started", task=self.name, interval_s=self._interval_s)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        log.info("periodic_task_stopped", task=self.name, ticks=self.ticks)

    async def run_once(self) -> bool:
        """执行一个 tick

        Returns:
            True 如果 tick 正常完成
        """
        self.ticks += 1
        try:
            await asyncio.wait_for(self._func(), timeout=self._tick_timeout_s)
        except TimeoutError:
            self.failures += 1
            log.warning(
                "tick_timed_out",
                task=self.name,
                timeout_s=self._tick_timeout_s,
            )
            return False
        except Exception as e:
            self.failures += 1
            log.error(
                "tick_failed",
                task=self.name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return False
        return True

    async def _run(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self._interval_s)
