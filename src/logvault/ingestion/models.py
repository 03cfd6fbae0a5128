"""Data models for the ingestion layer."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Optional

# [2024-03-15 10:42:07] [W] disk nearly full
LINE_PATTERN = re.compile(
    r"^\[(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\]"  # timestamp
    r" \[([TDIWEF])\]"  # level abbreviation
    r" (.*)$"  # body
)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class Level(Enum):
    """Severity of an ingested record.

    Text only appears at the edges: ``parse`` on decode and ``abbreviation``
    on output. Unknown names coerce to ``INFO``.
    """

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"

    @property
    def abbreviation(self) -> str:
        return self.value[0]

    @classmethod
    def lookup(cls, text: str) -> Optional[Level]:
        """Case-insensitive match against the six names, None if unknown."""
        try:
            return cls(text.upper())
        except ValueError:
            return None

    @classmethod
    def parse(cls, text: str) -> Level:
        """Total parse: unknown input maps to INFO."""
        return cls.lookup(text) or cls.INFO

    @classmethod
    def from_abbreviation(cls, abbr: str) -> Level:
        for level in cls:
            if level.abbreviation == abbr:
                return level
        raise ValueError(f"Unknown level abbreviation: {abbr!r}")


@dataclass(frozen=True)
class Record:
    """One canonical record, stamped with local time at decode."""

    level: Level
    body: str
    event_time: datetime


class PartitionKey(NamedTuple):
    """(year, month, day, hour) of the hourly file a record belongs to."""

    year: int
    month: int
    day: int
    hour: int

    @classmethod
    def for_time(cls, event_time: datetime) -> PartitionKey:
        return cls(event_time.year, event_time.month, event_time.day, event_time.hour)

    def directory(self, root: Path) -> Path:
        """<root>/YYYY/MM/DD"""
        return root / f"{self.year:04d}" / f"{self.month:02d}" / f"{self.day:02d}"

    def file_path(self, root: Path) -> Path:
        """<root>/YYYY/MM/DD/HH.log"""
        return self.directory(root) / f"{self.hour:02d}.log"


def format_timestamp(event_time: datetime) -> str:
    # strftime("%Y") does not zero-pad years below 1000 on every platform
    return (
        f"{event_time.year:04d}-{event_time.month:02d}-{event_time.day:02d} "
        f"{event_time.hour:02d}:{event_time.minute:02d}:{event_time.second:02d}"
    )


def format_line(level: Level, body: str, event_time: datetime) -> str:
    """Render one output line, newline included. The body is not escaped."""
    return f"[{format_timestamp(event_time)}] [{level.abbreviation}] {body}\n"


@dataclass(frozen=True)
class ParsedLine:
    timestamp: datetime
    level: Level
    body: str


def parse_line(raw: str) -> Optional[ParsedLine]:
    """Parse one line written by the partition writer, None if it doesn't match."""
    m = LINE_PATTERN.match(raw)
    if not m:
        return None
    return ParsedLine(
        timestamp=datetime.strptime(m.group(1), TIMESTAMP_FORMAT),
        level=Level.from_abbreviation(m.group(2)),
        body=m.group(3),
    )
