"""Load, validate, and hot-reload the Pulsewatch monitor configuration.

The config lives in ``monitor_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_monitor_config()`` to re-read from
disk; the running monitor picks up new values the next time it is built.

Usage::

    from src.monitor.config_loader import get_monitor_config

    config = get_monitor_config()
    config.sync.interval_seconds        # 10.0
    config.reposition.margin            # 0.8
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from src.monitor.base import MonitorError

logger = logging.getLogger("pulsewatch.monitor.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "monitor_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class SyncConfig:
    """Remote sync cadence and target document."""

    interval_seconds: float = 10.0
    collection_id: str = "heartRates"
    document_id: str = "latestHeartRate"
    max_in_flight: int = 0


@dataclass
class RepositionConfig:
    """Anti-burn-in repositioning settings."""

    interval_seconds: float = 10.0
    margin: float = 0.8
    container_diameter: float | None = None
    contain_label_box: bool = False


@dataclass
class DisplayConfig:
    """Text shown on the watch face."""

    unavailable_text: str = "Heart Rate Sensor not available"
    no_reading_text: str = "--"
    reading_format: str = "{bpm}"


@dataclass
class SimulatorConfig:
    """Parameters of the simulated heart-rate sensor."""

    interval_seconds: float = 1.0
    baseline_bpm: int = 72
    dropout_probability: float = 0.1


@dataclass
class MonitorConfig:
    """Complete, validated monitor configuration.

    Attributes:
        version:    Config schema version string.
        sync:       Remote sync settings.
        reposition: Label repositioning settings.
        display:    Watch-face texts.
        simulator:  Simulated sensor settings.
    """

    version: str
    sync: SyncConfig
    reposition: RepositionConfig
    display: DisplayConfig
    simulator: SimulatorConfig
    _raw: dict = field(default_factory=dict, repr=False)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(MonitorError, ValueError):
    """Raised when monitor_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Monitor config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> MonitorConfig:
    """Validate the raw YAML dict and construct a MonitorConfig.

    Missing sections and keys fall back to the dataclass defaults.  All
    problems are collected and reported together.

    Raises:
        ConfigValidationError: If any value is missing a valid type or range.
    """
    errors: list[str] = []

    def _section(name: str) -> dict:
        value = raw.get(name) or {}
        if not isinstance(value, dict):
            errors.append(f"'{name}' must be a mapping")
            return {}
        return value

    def _number(d: dict, key: str, section: str, default: float) -> float:
        value = d.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            errors.append(f"{section}.{key} must be a number, got {value!r}")
            return default

    def _positive(d: dict, key: str, section: str, default: float) -> float:
        value = _number(d, key, section, default)
        if value <= 0:
            errors.append(f"{section}.{key} must be positive, got {value}")
        return value

    version = str(raw.get("version", "1.0"))

    # ── Sync ──
    sync_raw = _section("sync")
    max_in_flight = int(_number(sync_raw, "max_in_flight", "sync", 0))
    if max_in_flight < 0:
        errors.append(f"sync.max_in_flight must be >= 0, got {max_in_flight}")
    sync = SyncConfig(
        interval_seconds=_positive(sync_raw, "interval_seconds", "sync", 10.0),
        collection_id=str(sync_raw.get("collection_id", "heartRates")),
        document_id=str(sync_raw.get("document_id", "latestHeartRate")),
        max_in_flight=max_in_flight,
    )
    if not sync.collection_id or not sync.document_id:
        errors.append("sync.collection_id and sync.document_id must be non-empty")

    # ── Reposition ──
    rp_raw = _section("reposition")
    margin = _number(rp_raw, "margin", "reposition", 0.8)
    if not 0.0 < margin <= 1.0:
        errors.append(f"reposition.margin = {margin} is out of range (0.0, 1.0]")
    container_diameter = None
    if rp_raw.get("container_diameter") is not None:
        container_diameter = _positive(rp_raw, "container_diameter", "reposition", 450.0)
    reposition = RepositionConfig(
        interval_seconds=_positive(rp_raw, "interval_seconds", "reposition", 10.0),
        margin=margin,
        container_diameter=container_diameter,
        contain_label_box=bool(rp_raw.get("contain_label_box", False)),
    )

    # ── Display ──
    dp_raw = _section("display")
    display = DisplayConfig(
        unavailable_text=str(dp_raw.get("unavailable_text", DisplayConfig.unavailable_text)),
        no_reading_text=str(dp_raw.get("no_reading_text", DisplayConfig.no_reading_text)),
        reading_format=str(dp_raw.get("reading_format", DisplayConfig.reading_format)),
    )
    try:
        display.reading_format.format(bpm=72)
    except (KeyError, IndexError, ValueError) as exc:
        errors.append(f"display.reading_format is invalid: {exc!r}")

    # ── Simulator ──
    sim_raw = _section("simulator")
    dropout = _number(sim_raw, "dropout_probability", "simulator", 0.1)
    if not 0.0 <= dropout <= 1.0:
        errors.append(f"simulator.dropout_probability = {dropout} is out of range [0.0, 1.0]")
    simulator = SimulatorConfig(
        interval_seconds=_positive(sim_raw, "interval_seconds", "simulator", 1.0),
        baseline_bpm=int(_positive(sim_raw, "baseline_bpm", "simulator", 72)),
        dropout_probability=dropout,
    )

    if errors:
        raise ConfigValidationError(
            f"monitor_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return MonitorConfig(
        version=version,
        sync=sync,
        reposition=reposition,
        display=display,
        simulator=simulator,
        _raw=raw,
    )


def load_monitor_config(path: Path | None = None) -> MonitorConfig:
    """Load and validate the monitor config from disk.

    Args:
        path: Override path to YAML. Uses the bundled monitor_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded monitor config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: MonitorConfig | None = None
_config_lock = threading.Lock()


def get_monitor_config() -> MonitorConfig:
    """Return the global MonitorConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_monitor_config()
    return _config


def reload_monitor_config(path: Path | None = None) -> MonitorConfig:
    """Reload the monitor config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_monitor_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded monitor config: %s → %s", old_version, new_config.version)
    return new_config
