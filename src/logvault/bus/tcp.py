"""Newline-delimited TCP bus source."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional

from logvault.bus.base import BusSource

logger = logging.getLogger(__name__)

# host:port, with IPv6 hosts in brackets: [::1]:9092
ENDPOINT_PATTERN = re.compile(r"^(?:\[(?P<v6>[^\]]+)\]|(?P<host>[^:\[\]]+)):(?P<port>\d{1,5})$")


def parse_endpoint(endpoint: str) -> tuple[str, int]:
    """Split ``host:port``. Raises ValueError for anything else."""
    m = ENDPOINT_PATTERN.match(endpoint.strip())
    if not m:
        raise ValueError(f"Invalid endpoint address: {endpoint!r}")
    port = int(m.group("port"))
    if not 0 < port < 65536:
        raise ValueError(f"Invalid endpoint port: {endpoint!r}")
    return m.group("v6") or m.group("host"), port


class TcpLineSource(BusSource):
    """Reads one payload per line from a TCP stream.

    End of stream is reported as a connection reset so the supervisor
    reconnects. A read that finds no complete line within ``read_timeout``
    returns None; a partial line stays buffered for the next call.
    """

    def __init__(self, connect_timeout: float = 5.0, read_timeout: float = 0.05) -> None:
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self.endpoint: Optional[str] = None

    async def connect(self, endpoint: str) -> None:
        await self.close()
        host, port = parse_endpoint(endpoint)
        self._reader, self._writer = await asyncio.wait_for(
            asyncio.open_connection(host, port), timeout=self._connect_timeout
        )
        self.endpoint = endpoint
        logger.info("Connected to %s", endpoint)

    async def receive(self) -> Optional[bytes]:
        if self._reader is None:
            raise ConnectionResetError("connection reset: not connected")
        try:
            line = await asyncio.wait_for(self._reader.readline(), timeout=self._read_timeout)
        except asyncio.TimeoutError:
            return None

        if not line:
            raise ConnectionResetError(f"connection reset: {self.endpoint} closed the stream")
        if not line.endswith(b"\n"):
            # EOF in the middle of a line; deliver it, the next read reports the reset
            return line
        line = line.rstrip(b"\r\n")
        return line or None

    async def close(self) -> None:
        writer, self._writer, self._reader = self._writer, None, None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("Error closing connection to %s: %s", self.endpoint, e)
