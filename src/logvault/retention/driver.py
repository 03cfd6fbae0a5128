"""Daily retention loop over the partition root."""

from __future__ import annotations

import asyncio
import logging
import shutil
import stat
from dataclasses import dataclass, field
from datetime import datetime, time, tzinfo
from pathlib import Path
from typing import Awaitable, Callable, Optional

import aiofiles.os

from logvault.retention.schedule import next_cleanup, now_local, seconds_until

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class SweepResult:
    """Outcome of one sweep."""

    cutoff: datetime
    removed: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)


class RetentionDriver:
    """Sleeps until the daily cleanup time, then prunes old subtrees.

    Only the immediate children of ``root`` are aged, by their own
    directory mtime; a child is removed as a whole. Errors are logged and
    the loop keeps going.
    """

    def __init__(
        self,
        root: str | Path,
        retention_days: int,
        cleanup_time: Optional[time] = None,
        tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        if retention_days <= 0:
            raise ValueError("retention_days must be greater than 0")
        self.root = Path(root)
        self.retention_days = retention_days
        self.cleanup_time = cleanup_time
        self._tz = tz
        self._clock = clock or (lambda: now_local(tz))
        self._sleep = sleep or self._wait
        self._stopping = asyncio.Event()

    def next_run(self, now: Optional[datetime] = None) -> datetime:
        return next_cleanup(now or self._clock(), self.cleanup_time, self._tz)

    def cutoff_timestamp(self, now: datetime) -> float:
        return now.timestamp() - self.retention_days * SECONDS_PER_DAY

    async def run(self) -> None:
        """Run until ``stop()`` is called."""
        logger.info(
            "Retention started for %s (keep %d days, daily at %s)",
            self.root,
            self.retention_days,
            self.cleanup_time or "01:00:00",
        )
        while not self._stopping.is_set():
            now = self._clock()
            trigger = self.next_run(now)
            delay = seconds_until(trigger, now)
            if delay > 0:
                logger.info("Next cleanup at %s", trigger.strftime("%Y-%m-%d %H:%M:%S %Z"))
                await self._sleep(delay)
                if self._stopping.is_set():
                    break

            try:
                await self.sweep()
            except Exception as e:
                logger.error("Error during cleanup: %s", e)

        logger.info("Retention stopped")

    def stop(self) -> None:
        self._stopping.set()

    async def _wait(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def expired_children(self, now: Optional[datetime] = None) -> list[Path]:
        """First-level directories under root whose mtime is at or before the cutoff."""
        now = now or self._clock()
        cutoff = self.cutoff_timestamp(now)
        expired = []

        for name in sorted(await aiofiles.os.listdir(self.root)):
            path = self.root / name
            try:
                st = await aiofiles.os.stat(path)
            except OSError:
                continue  # unreadable metadata
            if not stat.S_ISDIR(st.st_mode):
                continue
            if st.st_mtime <= cutoff:
                expired.append(path)

        return expired

    async def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """Remove every expired first-level subtree of root."""
        now = now or self._clock()
        result = SweepResult(cutoff=datetime.fromtimestamp(self.cutoff_timestamp(now), now.tzinfo))
        logger.info("Cleaning up logs older than %d days in %s", self.retention_days, self.root)

        try:
            expired = await self.expired_children(now)
        except OSError as e:
            logger.error("Cannot read log directory %s: %s", self.root, e)
            return result

        for path in expired:
            try:
                await asyncio.to_thread(shutil.rmtree, path)
            except OSError as e:
                logger.error("Failed to remove %s: %s", path, e)
                result.failed.append(path)
            else:
                logger.info("Removed expired directory %s", path)
                result.removed.append(path)

        if result.removed:
            logger.info("Cleanup finished, removed %d directories", len(result.removed))
        else:
            logger.info("Cleanup finished, nothing to remove")
        return result
