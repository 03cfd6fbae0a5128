"""Process bring-up: wires the retention driver and the ingest supervisor."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Callable, Optional

from logvault.bus.base import BusSource
from logvault.bus.tcp import TcpLineSource
from logvault.config.settings import DaemonConfig
from logvault.ingest.supervisor import IngestSupervisor
from logvault.ingestion.normalizer import RecordNormalizer
from logvault.retention.driver import RetentionDriver
from logvault.storage.partition_writer import PartitionWriter

logger = logging.getLogger(__name__)


class LogDaemon:
    """Runs retention and (when enabled) ingest as two independent tasks.

    The tasks share nothing but the filesystem. ``run`` returns after
    ``stop()`` or a signal; an unexpected task failure is re-raised.
    """

    def __init__(
        self,
        config: DaemonConfig,
        source_factory: Optional[Callable[[], BusSource]] = None,
    ) -> None:
        self.config = config
        self.writer = PartitionWriter(config.log_root)
        self.retention = RetentionDriver(
            root=config.log_root,
            retention_days=config.retention_days,
            cleanup_time=config.cleanup_time,
        )
        self.supervisor: Optional[IngestSupervisor] = None
        if config.bus.enabled:
            bus = config.bus
            self.supervisor = IngestSupervisor(
                endpoints=config.endpoints,
                source_factory=source_factory
                or (lambda: TcpLineSource(connect_timeout=bus.connect_timeout_ms / 1000)),
                writer=self.writer,
                normalizer=RecordNormalizer(),
                reconnect_interval=bus.reconnect_interval_ms / 1000,
                poll_interval=bus.heartbeat_interval_ms / 1000,
                idle_delay=bus.idle_delay_ms / 1000,
                receive_error_delay=bus.receive_error_delay_ms / 1000,
                mirror_records=config.logging.mirror_records,
            )
        self._stopping = asyncio.Event()

    async def run(self, install_signal_handlers: bool = True) -> None:
        cfg = self.config
        logger.info("Log daemon starting")
        logger.info(
            "Log root: %s, retention: %d days, level: %s",
            cfg.log_root,
            cfg.retention_days,
            cfg.logging.level,
        )

        if install_signal_handlers:
            self._install_signal_handlers()

        tasks = [asyncio.create_task(self.retention.run(), name="retention")]
        if self.supervisor is not None:
            bus = cfg.bus
            for endpoint in bus.brokers:
                logger.info("Endpoint: %s", endpoint)
            logger.info("Group: %s, topics: %s", bus.group_id, ", ".join(bus.topics))
            logger.info("Reconnect interval: %dms", bus.reconnect_interval_ms)
            tasks.append(asyncio.create_task(self.supervisor.run(), name="ingest"))
        else:
            logger.warning("Bus ingest is disabled, running retention only")

        stop_waiter = asyncio.create_task(self._stopping.wait(), name="stop")
        try:
            done, _ = await asyncio.wait(
                [*tasks, stop_waiter], return_when=asyncio.FIRST_COMPLETED
            )
            for task in done:
                if task is not stop_waiter and task.exception() is not None:
                    logger.error("Task %s failed: %s", task.get_name(), task.exception())
                    raise task.exception()
        finally:
            self._shutdown_loops()
            stop_waiter.cancel()
            await asyncio.gather(*tasks, stop_waiter, return_exceptions=True)
            logger.info("Log daemon stopped")

    def stop(self) -> None:
        logger.info("Shutting down...")
        self._stopping.set()

    def _shutdown_loops(self) -> None:
        self.retention.stop()
        if self.supervisor is not None:
            self.supervisor.stop()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no signal handler support
                logger.debug("Signal handler for %s not installed", sig.name)
