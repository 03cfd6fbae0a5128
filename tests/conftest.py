"""Shared test fixtures: stub bus, fixed clock, config files."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import pytest
import yaml

from logvault.bus.base import BusSource
from logvault.errors import IoKind, PartitionWriteError
from logvault.ingestion.normalizer import RecordNormalizer
from logvault.storage.partition_writer import PartitionWriter

FIXED_NOW = datetime(2024, 3, 15, 10, 42, 7)

BusItem = Union[bytes, Exception, None]


class FakeNetwork:
    """Endpoints and a message queue shared by every FakeBus session."""

    def __init__(self, reachable: set[str], items: Optional[list[BusItem]] = None) -> None:
        self.reachable = set(reachable)
        self.items: deque[BusItem] = deque(items or [])
        self.connect_attempts: list[str] = []
        self.sessions: list[FakeBus] = []

    def factory(self) -> FakeBus:
        bus = FakeBus(self)
        self.sessions.append(bus)
        return bus


class FakeBus(BusSource):
    """Stub bus: connects to reachable endpoints and replays queued items."""

    def __init__(self, network: FakeNetwork) -> None:
        self.network = network
        self.endpoint: Optional[str] = None
        self.closed = False

    async def connect(self, endpoint: str) -> None:
        self.network.connect_attempts.append(endpoint)
        if endpoint not in self.network.reachable:
            raise ConnectionRefusedError(111, "Connection refused")
        self.endpoint = endpoint

    async def receive(self) -> Optional[bytes]:
        if not self.network.items:
            return None
        item = self.network.items.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


class FailingWriter(PartitionWriter):
    """Partition writer whose first ``failures`` writes raise ``error``."""

    def __init__(self, root: Path, error: OSError, failures: int = 1) -> None:
        super().__init__(root)
        self.error = error
        self.failures = failures
        self.attempts = 0

    async def write(self, level, body, event_time):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise PartitionWriteError(IoKind.WRITE, self.path_for(event_time), self.error)
        return await super().write(level, body, event_time)


@pytest.fixture
def fixed_normalizer() -> RecordNormalizer:
    return RecordNormalizer(clock=lambda: FIXED_NOW)


@pytest.fixture
def log_root(tmp_path: Path) -> Path:
    root = tmp_path / "logs"
    root.mkdir()
    return root


@pytest.fixture
def wait_until() -> Callable:
    """Poll a condition inside the running loop, failing after ``timeout`` seconds."""

    async def _wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.005)

    return _wait


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[dict], Path]:
    def _write(data: dict, name: str = "config.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def valid_config_data(tmp_path: Path) -> dict:
    return {
        "logging": {
            "level": "INFO",
            "path": str(tmp_path / "logs"),
            "retention_days": 7,
            "cleanup_time": "01:00",
        },
        "bus": {
            "enabled": True,
            "brokers": ["127.0.0.1:9092"],
            "group_id": "log-ingest",
            "topics": ["app-logs"],
            "reconnect_interval_ms": 5000,
        },
    }
