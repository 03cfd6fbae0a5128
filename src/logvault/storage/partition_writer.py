"""Appends formatted lines to hourly partition files.

Layout: <root>/YYYY/MM/DD/HH.log. Directories are created on every call
(``exist_ok``); the filesystem is the only cache. File handles are opened
and closed per line, so an hour boundary needs no special handling.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import aiofiles
import aiofiles.os

from logvault.errors import IoKind, PartitionWriteError
from logvault.ingestion.models import Level, PartitionKey, Record, format_line

logger = logging.getLogger(__name__)


class PartitionWriter:
    """Writes records into the partition tree under ``root``.

    No retries happen here; every filesystem error is raised to the caller
    as a ``PartitionWriteError`` tagged with the failing step.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, event_time: datetime) -> Path:
        return PartitionKey.for_time(event_time).file_path(self.root)

    async def write(self, level: Level | str, body: str, event_time: datetime) -> Path:
        """Append one line for ``event_time`` and return the partition file path."""
        if not isinstance(level, Level):
            level = Level.parse(level)

        key = PartitionKey.for_time(event_time)
        directory = key.directory(self.root)
        file_path = key.file_path(self.root)

        try:
            await aiofiles.os.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise PartitionWriteError(IoKind.MKDIR, directory, e) from e

        # Encoded up front so the line goes out in a single write request
        data = format_line(level, body, event_time).encode("utf-8")

        try:
            f = await aiofiles.open(file_path, mode="ab")
        except OSError as e:
            raise PartitionWriteError(IoKind.OPEN, file_path, e) from e

        try:
            try:
                await f.write(data)
            finally:
                await f.close()
        except OSError as e:
            raise PartitionWriteError(IoKind.WRITE, file_path, e) from e

        return file_path

    async def write_record(self, record: Record) -> Path:
        return await self.write(record.level, record.body, record.event_time)
