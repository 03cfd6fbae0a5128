"""Ingest supervisor: bus session management and reconnect policy.

States::

    DISCONNECTED -> CONNECTING -> CONSUMING -> DISCONNECTED
                        |                          ^
                        +-- every endpoint failed -+

Each session starts at the head of the endpoint list. A session ends on a
connection-classified error and the next one starts after
``reconnect_interval``. Decode failures and other errors are reported and
skipped without leaving the session.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Sequence

from logvault.bus.base import BusSource
from logvault.errors import (
    BusConnectError,
    DecodeError,
    PartitionWriteError,
    SessionError,
    is_connection_error,
    render_error,
)
from logvault.ingestion.models import Level, Record
from logvault.ingestion.normalizer import RecordNormalizer
from logvault.storage.partition_writer import PartitionWriter

logger = logging.getLogger(__name__)
record_logger = logging.getLogger("logvault.records")

CHECKPOINT_EVERY = 100

MIRROR_LEVELS = {
    Level.TRACE: logging.DEBUG,
    Level.DEBUG: logging.DEBUG,
    Level.INFO: logging.INFO,
    Level.WARN: logging.WARNING,
    Level.ERROR: logging.ERROR,
    Level.FATAL: logging.CRITICAL,
}


class SupervisorState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONSUMING = "consuming"


class Ticker:
    """Fixed-rate ticker: first tick is immediate, missed ticks fire at once."""

    def __init__(self, period: float) -> None:
        self._period = period
        self._next: Optional[float] = None

    def next_delay(self) -> float:
        """Seconds to wait before the next tick is due."""
        now = asyncio.get_running_loop().time()
        if self._next is None:
            self._next = now
        delay = self._next - now
        self._next += self._period
        return max(delay, 0.0)


class IngestSupervisor:
    """Keeps one bus session alive and feeds its payloads to the writer."""

    def __init__(
        self,
        endpoints: Sequence[str],
        source_factory: Callable[[], BusSource],
        writer: PartitionWriter,
        normalizer: Optional[RecordNormalizer] = None,
        reconnect_interval: float = 5.0,
        poll_interval: float = 10.0,
        idle_delay: float = 0.1,
        receive_error_delay: float = 1.0,
        mirror_records: bool = False,
    ) -> None:
        if not endpoints:
            raise ValueError("At least one endpoint is required")
        self.endpoints = list(endpoints)
        self._source_factory = source_factory
        self._writer = writer
        self._normalizer = normalizer or RecordNormalizer()
        self._reconnect_interval = reconnect_interval
        self._poll_interval = poll_interval
        self._idle_delay = idle_delay
        self._receive_error_delay = receive_error_delay
        self._mirror_records = mirror_records
        self._stopping = asyncio.Event()

        self.state = SupervisorState.DISCONNECTED
        self.endpoint: Optional[str] = None
        self.sessions = 0
        self.written = 0

    async def run(self) -> None:
        """Run sessions until ``stop()`` is called. Only cancellation escapes."""
        while not self._stopping.is_set():
            try:
                await self.run_session()
            except (BusConnectError, SessionError) as e:
                logger.error("Ingest session ended: %s", e)
                logger.info("Reconnecting in %dms", round(self._reconnect_interval * 1000))
                await self._pause(self._reconnect_interval)
                continue
            except Exception as e:
                logger.exception("Ingest session failed unexpectedly: %s", render_error(e))
                logger.info("Reconnecting in %dms", round(self._reconnect_interval * 1000))
                await self._pause(self._reconnect_interval)
                continue
            break
        self.state = SupervisorState.DISCONNECTED
        logger.info("Ingest stopped after %d records", self.written)

    def stop(self) -> None:
        self._stopping.set()

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    async def run_session(self) -> None:
        """One session: connect, then consume until stopped or disconnected.

        Returns normally only on shutdown.
        """
        self.sessions += 1
        source = self._source_factory()
        try:
            await self._connect(source)
            await self._consume(source)
        finally:
            self.state = SupervisorState.DISCONNECTED
            self.endpoint = None
            await source.close()

    async def _connect(self, source: BusSource) -> None:
        self.state = SupervisorState.CONNECTING
        failures = []
        for endpoint in self.endpoints:
            try:
                await source.connect(endpoint)
            except Exception as e:
                logger.warning("Failed to connect to %s: %s", endpoint, render_error(e))
                failures.append(endpoint)
                continue
            logger.info("Connected to endpoint %s", endpoint)
            self.endpoint = endpoint
            self.state = SupervisorState.CONSUMING
            return
        raise BusConnectError(f"All endpoints failed: {', '.join(failures)}")

    async def _consume(self, source: BusSource) -> None:
        ticker = Ticker(self._poll_interval)
        while not self._stopping.is_set():
            await self._pause(ticker.next_delay())
            if self._stopping.is_set():
                return

            try:
                payload = await source.receive()
            except Exception as e:
                message = render_error(e)
                logger.error("Receive failed: %s", message)
                if is_connection_error(message):
                    logger.warning("Connection error detected, reconnecting")
                    raise SessionError(message) from e
                await self._pause(self._receive_error_delay)
                continue

            if payload is None:
                await self._pause(self._idle_delay)
                continue

            await self.process(payload)

    async def process(self, payload: bytes) -> Optional[Record]:
        """Decode and write one payload.

        Returns the record once written, None if it was skipped. Raises
        ``SessionError`` when the write failure looks like a lost connection.
        """
        try:
            record = self._normalizer.decode(payload)
        except DecodeError as e:
            logger.warning("Skipping undecodable message: %s (payload=%r)", e, payload[:200])
            return None

        try:
            await self._writer.write_record(record)
        except Exception as e:
            message = render_error(e)
            logger.error("Failed to write record: %s", message)
            # The partition path is part of the message; classify the OS error alone
            cause = e.cause if isinstance(e, PartitionWriteError) else e
            if is_connection_error(render_error(cause)):
                logger.warning("Connection error detected, reconnecting")
                raise SessionError(message) from e
            return None

        self.written += 1
        if self._mirror_records:
            record_logger.log(MIRROR_LEVELS[record.level], "[%s] %s", record.level.abbreviation, record.body)
        if self.written % CHECKPOINT_EVERY == 0:
            logger.info("Processed %d records", self.written)
        return record

    async def _pause(self, seconds: float) -> None:
        """Sleep that ends early on ``stop()``."""
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
