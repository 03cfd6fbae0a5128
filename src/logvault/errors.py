"""Exception types and connection-error classification.

Runtime failures are contained by the component that raised them; only
``ConfigError`` is fatal. Whether a failure should end an ingest session
is decided by ``is_connection_error`` over the rendered error text.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

# Substrings (lower-case) that mark an error as a lost connection rather than
# a transient application failure. Keep every synonym here.
CONNECTION_ERROR_TOKENS: tuple[str, ...] = (
    "connection refused",
    "connection reset",
    "connection aborted",
    "connection closed",
    "network unreachable",
    "network is unreachable",
    "no route to host",
    "host is unreachable",
    "timeout",
    "timed out",
    "broken pipe",
    # Wording some upstream brokers and client libraries emit in Chinese
    "连接失败",
    "连接中断",
    "网络中断",
)


class LogVaultError(Exception):
    """Base exception for the daemon."""


class ConfigError(LogVaultError):
    """Raised when the configuration is missing or invalid."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid configuration")


class DecodeError(LogVaultError):
    """Raised when a bus payload cannot be turned into a record."""


class IoKind(str, Enum):
    """Which filesystem step of a partition write failed."""

    MKDIR = "mkdir"
    OPEN = "open"
    WRITE = "write"


class PartitionWriteError(LogVaultError):
    """Raised when a line could not be appended to its partition file."""

    def __init__(self, kind: IoKind, path: Path, cause: BaseException) -> None:
        self.kind = kind
        self.path = path
        self.cause = cause
        super().__init__(f"{kind.value} failed for {path}: {render_error(cause)}")


class BusConnectError(LogVaultError):
    """Raised when no configured endpoint accepted a connection."""


class SessionError(LogVaultError):
    """Raised when an ingest session ends because the connection was lost."""


class ClockArithmeticError(LogVaultError):
    """Raised when a wall-clock time cannot be mapped to a real instant."""


def render_error(exc: BaseException) -> str:
    """Human-readable form of an exception, used for classification.

    ``str()`` alone is not enough: ``TimeoutError()`` renders as an empty
    string and asyncio connect failures omit the OS wording, so the type
    name and the errno description are included.
    """
    text = f"{type(exc).__name__}: {exc}"
    errno = getattr(exc, "errno", None)
    if isinstance(errno, int):
        strerror = os.strerror(errno)
        if strerror.lower() not in text.lower():
            text = f"{text} ({strerror})"
    return text


def is_connection_error(message: str) -> bool:
    """Return True if the rendered error text names a lost connection."""
    lowered = message.lower()
    return any(token in lowered for token in CONNECTION_ERROR_TOKENS)
