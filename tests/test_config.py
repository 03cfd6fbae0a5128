"""Tests for config loading and validation."""

from __future__ import annotations

from datetime import time

import pytest

from logvault.config.settings import (
    BusSettings,
    DaemonConfig,
    LoggingSettings,
    load_config,
    resolve_config_path,
)
from logvault.errors import ConfigError


class TestResolveConfigPath:
    def test_explicit_argument_wins(self, monkeypatch):
        monkeypatch.setenv("LOGVAULT_CONFIG", "/etc/env.yaml")
        assert resolve_config_path("/etc/arg.yaml") == "/etc/arg.yaml"

    def test_env_var(self, monkeypatch):
        monkeypatch.setenv("LOGVAULT_CONFIG", "/etc/env.yaml")
        assert resolve_config_path() == "/etc/env.yaml"

    def test_default(self, monkeypatch):
        monkeypatch.delenv("LOGVAULT_CONFIG", raising=False)
        assert resolve_config_path() == "config.yaml"


class TestLoadConfig:
    """Test loading full config files."""

    def test_valid_file(self, write_config, valid_config_data, tmp_path):
        config = load_config(str(write_config(valid_config_data)))

        assert config.log_root == tmp_path / "logs"
        assert config.retention_days == 7
        assert config.cleanup_time == time(1, 0)
        assert config.bus.enabled is True
        assert config.endpoints == ["127.0.0.1:9092"]
        assert config.bus.reconnect_interval_ms == 5000
        assert config.bus.heartbeat_interval_ms == 10000

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read config file"):
            load_config(str(tmp_path / "nope.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("logging: [unclosed\n")
        with pytest.raises(ConfigError, match="Cannot parse config file"):
            load_config(str(path))

    def test_top_level_not_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="top level must be a mapping"):
            load_config(str(path))

    def test_empty_file_reports_required_keys(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        with pytest.raises(ConfigError) as excinfo:
            load_config(str(path))
        assert "logging.path is required" in excinfo.value.errors
        assert "logging.retention_days is required" in excinfo.value.errors

    def test_kafka_section_alias(self, write_config, valid_config_data):
        valid_config_data["kafka"] = valid_config_data.pop("bus")
        config = load_config(str(write_config(valid_config_data)))
        assert config.bus.group_id == "log-ingest"

    def test_legacy_keys_ignored(self, write_config, valid_config_data):
        valid_config_data["logging"].update(compress=True, rotate=True)
        valid_config_data["bus"].update(auto_offset_reset="earliest", session_timeout_ms=30000)
        config = load_config(str(write_config(valid_config_data)))
        assert config.bus.enabled is True

    def test_unquoted_cleanup_time_rejected(self, tmp_path):
        # YAML 1.1 reads 13:30 as the base-60 integer 810
        path = tmp_path / "config.yaml"
        path.write_text(
            f"logging:\n  path: {tmp_path / 'logs'}\n  retention_days: 7\n  cleanup_time: 13:30\n"
        )
        with pytest.raises(ConfigError, match="quoted string"):
            load_config(str(path))

    def test_cleanup_time_optional(self, write_config, valid_config_data):
        del valid_config_data["logging"]["cleanup_time"]
        config = load_config(str(write_config(valid_config_data)))
        assert config.cleanup_time is None

    def test_bus_section_optional(self, write_config, valid_config_data):
        del valid_config_data["bus"]
        config = load_config(str(write_config(valid_config_data)))
        assert config.bus.enabled is False
        assert config.endpoints == []


class TestLoggingSettings:
    """Test validation of the logging section."""

    @pytest.mark.parametrize("days, message", [
        (0, "greater than 0"),
        (-3, "greater than 0"),
        ("7", "must be an integer"),
        (True, "must be an integer"),
    ])
    def test_bad_retention_days(self, days, message):
        errors = LoggingSettings(path="/var/log/x", retention_days=days).validate()
        assert len(errors) == 1
        assert message in errors[0]

    @pytest.mark.parametrize("value", ["25:00", "12:60", "12:00:60", "noon", "1", "12:00:00:00", ""])
    def test_bad_cleanup_time(self, value):
        errors = LoggingSettings(path="/var/log/x", retention_days=7, cleanup_time=value).validate()
        assert len(errors) == 1
        assert "logging.cleanup_time" in errors[0]

    @pytest.mark.parametrize("value", ["00:00", "23:59", "23:59:59", "1:5"])
    def test_good_cleanup_time(self, value):
        assert LoggingSettings(path="/var/log/x", retention_days=7, cleanup_time=value).validate() == []

    def test_missing_path(self):
        errors = LoggingSettings(path="  ", retention_days=7).validate()
        assert errors == ["logging.path is required"]

    def test_diagnostic_file_inside_root(self, tmp_path):
        root = tmp_path / "logs"
        errors = LoggingSettings(
            path=str(root), retention_days=7, diagnostic_file=str(root / "2024" / "daemon.log")
        ).validate()
        assert errors == ["logging.diagnostic_file must not be inside logging.path"]

    def test_diagnostic_file_outside_root(self, tmp_path):
        settings = LoggingSettings(
            path=str(tmp_path / "logs"), retention_days=7, diagnostic_file=str(tmp_path / "daemon.log")
        )
        assert settings.validate() == []


class TestBusSettings:
    """Test validation of the bus section."""

    def test_disabled_bus_needs_nothing(self):
        assert BusSettings(enabled=False).validate() == []

    def test_enabled_bus_needs_brokers_topics_group(self):
        errors = BusSettings(enabled=True).validate()
        assert "bus.brokers must not be empty when the bus is enabled" in errors
        assert "bus.topics must not be empty when the bus is enabled" in errors
        assert "bus.group_id must not be empty when the bus is enabled" in errors

    def test_brokers_must_be_strings(self):
        errors = BusSettings(enabled=True, brokers=["ok:1", ""], group_id="g", topics=["t"]).validate()
        assert errors == ["bus.brokers entries must be non-empty strings"]

    def test_negative_interval(self):
        errors = BusSettings(reconnect_interval_ms=-1).validate()
        assert errors == ["bus.reconnect_interval_ms must be at least 0"]

    def test_enabled_must_be_bool(self):
        errors = BusSettings(enabled="yes").validate()
        assert errors == ["bus.enabled must be true or false"]


class TestDaemonConfig:
    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigError, match="logging section must be a mapping"):
            DaemonConfig.from_dict({"logging": ["a"]})

    def test_errors_from_both_sections(self):
        config = DaemonConfig.from_dict({"logging": {"retention_days": 0}, "bus": {"enabled": True}})
        errors = config.validate()
        assert "logging.path is required" in errors
        assert "bus.brokers must not be empty when the bus is enabled" in errors
