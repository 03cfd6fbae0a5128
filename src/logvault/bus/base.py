"""Contract between the ingest supervisor and an upstream bus client."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class BusSource(ABC):
    """A connection to one bus endpoint at a time.

    ``receive`` returns one encoded payload, or None when nothing is
    available right now. Transport failures are raised as exceptions; the
    supervisor decides from their text whether the connection is gone.
    """

    @abstractmethod
    async def connect(self, endpoint: str) -> None:
        """Open a connection to ``endpoint`` or raise."""

    @abstractmethod
    async def receive(self) -> Optional[bytes]:
        ...

    @abstractmethod
    async def close(self) -> None:
        """Drop the current connection. Safe to call when not connected."""
