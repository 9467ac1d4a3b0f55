"""Tests for monitor_config.yaml loading and validation."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from src.monitor.config_loader import (
    ConfigValidationError,
    MonitorConfig,
    _validate_and_build,
    get_monitor_config,
    load_monitor_config,
    reload_monitor_config,
)


class TestConfigLoading:
    """Tests for loading the bundled monitor_config.yaml."""

    def test_load_default_config(self, monitor_config: MonitorConfig) -> None:
        assert monitor_config.version == "1.0"

    def test_sync_defaults(self, monitor_config: MonitorConfig) -> None:
        sync = monitor_config.sync
        assert sync.interval_seconds == 10.0
        assert sync.collection_id == "heartRates"
        assert sync.document_id == "latestHeartRate"
        assert sync.max_in_flight == 0

    def test_reposition_defaults(self, monitor_config: MonitorConfig) -> None:
        rp = monitor_config.reposition
        assert rp.interval_seconds == 10.0
        assert rp.margin == 0.8
        assert rp.container_diameter is None
        assert rp.contain_label_box is False

    def test_display_defaults(self, monitor_config: MonitorConfig) -> None:
        assert monitor_config.display.unavailable_text == "Heart Rate Sensor not available"
        assert monitor_config.display.reading_format.format(bpm=61) == "61"

    def test_get_monitor_config_is_cached(self) -> None:
        assert get_monitor_config() is get_monitor_config()


class TestConfigValidation:
    """Tests for config validation logic."""

    def test_empty_config_uses_defaults(self) -> None:
        config = _validate_and_build({})
        assert config.sync.interval_seconds == 10.0
        assert config.reposition.margin == 0.8
        assert config.simulator.baseline_bpm == 72

    def test_container_override(self) -> None:
        config = _validate_and_build({"reposition": {"container_diameter": 450}})
        assert config.reposition.container_diameter == 450.0

    def test_non_positive_interval_raises(self) -> None:
        with pytest.raises(ConfigValidationError, match="sync.interval_seconds"):
            _validate_and_build({"sync": {"interval_seconds": 0}})

    def test_margin_out_of_range_raises(self) -> None:
        with pytest.raises(ConfigValidationError, match="reposition.margin"):
            _validate_and_build({"reposition": {"margin": 1.2}})

    def test_non_numeric_value_raises(self) -> None:
        with pytest.raises(ConfigValidationError, match="must be a number"):
            _validate_and_build({"reposition": {"interval_seconds": "often"}})

    def test_bad_reading_format_raises(self) -> None:
        with pytest.raises(ConfigValidationError, match="reading_format"):
            _validate_and_build({"display": {"reading_format": "{heart_rate}"}})

    def test_negative_max_in_flight_raises(self) -> None:
        with pytest.raises(ConfigValidationError, match="max_in_flight"):
            _validate_and_build({"sync": {"max_in_flight": -1}})

    def test_errors_are_collected(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _validate_and_build(
                {
                    "sync": {"interval_seconds": -1},
                    "simulator": {"dropout_probability": 2},
                }
            )
        assert "2 validation error(s)" in str(exc_info.value)

    def test_section_must_be_mapping(self) -> None:
        with pytest.raises(ConfigValidationError, match="'sync' must be a mapping"):
            _validate_and_build({"sync": [1, 2]})


class TestConfigFiles:
    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_monitor_config(tmp_path / "missing.yaml")

    def test_malformed_yaml_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("sync: [unclosed\n")
        with pytest.raises(ConfigValidationError, match="YAML parse error"):
            load_monitor_config(path)

    def test_reload_replaces_singleton(self, tmp_path: Path) -> None:
        path = tmp_path / "monitor_config.yaml"
        path.write_text(
            textwrap.dedent(
                """
                version: "2.0"
                sync:
                  interval_seconds: 5
                """
            )
        )
        try:
            config = reload_monitor_config(path)
            assert config.version == "2.0"
            assert config.sync.interval_seconds == 5.0
            assert get_monitor_config() is config
        finally:
            reload_monitor_config()

    def test_invalid_reload_keeps_old_config(self, tmp_path: Path) -> None:
        current = get_monitor_config()
        path = tmp_path / "monitor_config.yaml"
        path.write_text("reposition:\n  margin: 5\n")
        with pytest.raises(ConfigValidationError):
            reload_monitor_config(path)
        assert get_monitor_config() is current
