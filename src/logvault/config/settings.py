"""Daemon configuration from a YAML file.

Example::

    logging:
      level: INFO
      path: /var/log/ingest
      retention_days: 7
      cleanup_time: "01:00"
    bus:
      enabled: true
      brokers: ["10.0.0.1:9092", "10.0.0.2:9092"]
      group_id: log-ingest
      topics: [app-logs]
      reconnect_interval_ms: 5000
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from datetime import time
from pathlib import Path
from typing import Any, Optional

import yaml

from logvault.errors import ConfigError
from logvault.retention.schedule import parse_time_of_day

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"

# Keys older config files carry that have no effect here
IGNORED_KEYS = {
    "logging": {"compress", "rotate"},
    "bus": {"auto_offset_reset", "session_timeout_ms"},
}


def resolve_config_path(config_path: str | None = None) -> str:
    """Resolve config path from argument, env var, or default.

    Priority: explicit arg > LOGVAULT_CONFIG env var > ./config.yaml.
    """
    if config_path:
        return config_path
    return os.environ.get("LOGVAULT_CONFIG", DEFAULT_CONFIG_PATH)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class LoggingSettings:
    """The ``logging`` section: output tree, retention, diagnostics."""

    # Diagnostic log level name
    level: str = "INFO"
    # Root of the partition tree
    path: str = ""
    retention_days: Optional[int] = None
    # Daily cleanup time, HH:MM or HH:MM:SS (default 01:00:00)
    cleanup_time: Optional[str] = None
    # Optional file for the daemon's own log, outside the partition tree
    diagnostic_file: str = ""
    # Echo each ingested record to the diagnostic log
    mirror_records: bool = False

    def validate(self) -> list[str]:
        errors = []
        if not isinstance(self.level, str):
            errors.append("logging.level must be a string")
        if not isinstance(self.path, str) or not self.path.strip():
            errors.append("logging.path is required")

        if self.retention_days is None:
            errors.append("logging.retention_days is required")
        elif not _is_int(self.retention_days):
            errors.append("logging.retention_days must be an integer")
        elif self.retention_days <= 0:
            errors.append("logging.retention_days must be greater than 0")

        if self.cleanup_time is not None:
            if _is_int(self.cleanup_time):
                errors.append(
                    'logging.cleanup_time must be a quoted string such as "01:00" '
                    "(unquoted HH:MM is read by YAML as a number)"
                )
            elif not isinstance(self.cleanup_time, str):
                errors.append("logging.cleanup_time must be a string")
            else:
                try:
                    parse_time_of_day(self.cleanup_time)
                except ValueError as e:
                    errors.append(
                        f"logging.cleanup_time {self.cleanup_time!r} is invalid, "
                        f"use HH:MM or HH:MM:SS (0-23:0-59:0-59): {e}"
                    )

        if not isinstance(self.diagnostic_file, str):
            errors.append("logging.diagnostic_file must be a string")
        elif self.diagnostic_file and isinstance(self.path, str) and self.path.strip():
            root = Path(self.path).resolve()
            target = Path(self.diagnostic_file).resolve()
            if target == root or root in target.parents:
                errors.append("logging.diagnostic_file must not be inside logging.path")

        if not isinstance(self.mirror_records, bool):
            errors.append("logging.mirror_records must be true or false")
        return errors


@dataclass
class BusSettings:
    """The ``bus`` section: upstream endpoints and reconnect policy."""

    enabled: bool = False
    # Endpoint addresses, tried in order on every (re)connect
    brokers: list[str] = field(default_factory=list)
    group_id: str = ""
    topics: list[str] = field(default_factory=list)
    # Delay between a failed session and the next connect attempt
    reconnect_interval_ms: int = 5000
    # Poll cadence of the consume loop
    heartbeat_interval_ms: int = 10000
    connect_timeout_ms: int = 5000
    # Sleep when no message is available
    idle_delay_ms: int = 100
    # Sleep after a receive error that is not a lost connection
    receive_error_delay_ms: int = 1000

    def validate(self) -> list[str]:
        errors = []
        if not isinstance(self.enabled, bool):
            errors.append("bus.enabled must be true or false")

        for name, minimum in (
            ("reconnect_interval_ms", 0),
            ("heartbeat_interval_ms", 0),
            ("connect_timeout_ms", 1),
            ("idle_delay_ms", 0),
            ("receive_error_delay_ms", 0),
        ):
            value = getattr(self, name)
            if not _is_int(value):
                errors.append(f"bus.{name} must be an integer")
            elif value < minimum:
                errors.append(f"bus.{name} must be at least {minimum}")

        if self.enabled is True:
            errors.extend(self._validate_list("brokers"))
            errors.extend(self._validate_list("topics"))
            if not isinstance(self.group_id, str) or not self.group_id.strip():
                errors.append("bus.group_id must not be empty when the bus is enabled")
        return errors

    def _validate_list(self, name: str) -> list[str]:
        value = getattr(self, name)
        if not isinstance(value, list):
            return [f"bus.{name} must be a list"]
        if not value:
            return [f"bus.{name} must not be empty when the bus is enabled"]
        if not all(isinstance(item, str) and item.strip() for item in value):
            return [f"bus.{name} entries must be non-empty strings"]
        return []


@dataclass
class DaemonConfig:
    """Validated daemon configuration."""

    logging: LoggingSettings = field(default_factory=LoggingSettings)
    bus: BusSettings = field(default_factory=BusSettings)
    source: str = ""

    @property
    def log_root(self) -> Path:
        return Path(self.logging.path)

    @property
    def retention_days(self) -> int:
        return self.logging.retention_days

    @property
    def cleanup_time(self) -> Optional[time]:
        if self.logging.cleanup_time is None:
            return None
        return parse_time_of_day(self.logging.cleanup_time)

    @property
    def endpoints(self) -> list[str]:
        return list(self.bus.brokers)

    @classmethod
    def from_dict(cls, data: Any, source: str = "") -> DaemonConfig:
        """Build a config from parsed YAML. Values are checked by ``validate``."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError([f"{source or 'config'}: top level must be a mapping"])

        bus_data = data.get("bus", data.get("kafka"))
        return cls(
            logging=_section(LoggingSettings, "logging", data.get("logging")),
            bus=_section(BusSettings, "bus", bus_data),
            source=source,
        )

    @classmethod
    def from_yaml(cls, path: str) -> DaemonConfig:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError([f"Cannot read config file {path}: {e.strerror or e}"]) from e
        except yaml.YAMLError as e:
            detail = str(e).replace("\n", " ")
            raise ConfigError([f"Cannot parse config file {path}: {detail}"]) from e
        return cls.from_dict(data, source=path)

    def validate(self) -> list[str]:
        """Return list of validation errors, empty if config is valid."""
        return self.logging.validate() + self.bus.validate()


def _section(cls, name: str, data: Any):
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError([f"{name} section must be a mapping"])

    known = {f.name for f in fields(cls)}
    values = {}
    for key, value in data.items():
        if key in known:
            values[key] = value
        elif key not in IGNORED_KEYS.get(name, set()):
            logger.debug("Ignoring unknown config key %s.%s", name, key)
    return cls(**values)


def load_config(config_path: str | None = None) -> DaemonConfig:
    """Load and validate the config file. Raises ConfigError on any problem."""
    path = resolve_config_path(config_path)
    config = DaemonConfig.from_yaml(path)
    errors = config.validate()
    if errors:
        raise ConfigError(errors)
    return config
