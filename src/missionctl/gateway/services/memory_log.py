"""MemoryLog -- 每日 memory 日志追加

{memory_dir}/{YYYY-MM-DD}.md，日期按配置的时区计算。
文件写入放到线程中执行；失败只记录日志。
"""

import asyncio
from datetime import UTC, datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

log = structlog.get_logger()


class MemoryLog:
    """按日期分文件的 markdown 日志"""

    def __init__(self, memory_dir: str | Path, timezone: str = "UTC") -> None:
        self._memory_dir = Path(memory_dir)
        try:
            self._tz = ZoneInfo(timezone)
        except ZoneInfoNotFoundError:
            log.warning("invalid_memory_timezone", timezone=timezone)
            self._tz = ZoneInfo("UTC")

    @property
    def memory_dir(self) -> Path:
        return self._memory_dir

    def local_date(self, now: datetime | None = None) -> str:
        """按配置时区返回 YYYY-MM-DD"""
        return (now or datetime.now(UTC)).astimezone(self._tz).strftime("%Y-%m-%d")

    def path_for(self, now: datetime | None = None) -> Path:
        return self._memory_dir / f"{self.local_date(now)}.md"

    async def append_note(self, text: str, now: datetime | None = None) -> Path | None:
        """追加一行笔记

        Returns:
            写入的文件路径；失败返回 None
        """
        path = self.path_for(now)
        try:
            await asyncio.to_thread(self._append, path, text)
        except OSError as e:
            log.warning("memory_note_failed", path=str(path), error=str(e))
            return None
        log.debug("memory_note_appended", path=str(path))
        return path

    @staticmethod
    def _append(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(f"\n{text}\n")
