from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

STATUS_FILE_ENV = "CLI_MONITOR_STATUS_FILE"


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


def default_status_path() -> str:
    """Status inbox location: env override or a file in the temp directory."""
    return os.environ.get(STATUS_FILE_ENV) or os.path.join(
        tempfile.gettempdir(), "cli-monitor-status.json"
    )


@dataclass
class MonitorConfig:
    """Timing and sizing of the classification and tracking pipeline."""

    dedup_window_ms: int = 3000
    active_timeout_ms: int = 10000
    registry_ttl_seconds: float = 30.0
    history_capacity: int = 1000
    history_retain: int = 500


@dataclass
class StatusInboxConfig:
    """Out-of-band status file polled for hook start/stop reports."""

    enabled: bool = True
    path: str = field(default_factory=default_status_path)
    poll_interval_ms: int = 500


@dataclass
class CliConfig:
    """Monitored CLI invocation settings."""

    command: str = "claude"
    default_args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    cwd: str = "."
    poll_interval_ms: int = 200


@dataclass
class KnownItemsConfig:
    """Statically known item names per kind, used to seed the type registry."""

    mcps: list[str] = field(default_factory=list)
    plugins: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    agents: list[str] = field(default_factory=list)


@dataclass
class DebugConfig:
    """Debug mode settings."""

    enabled: bool = False
    trace: bool = False
    verbose: bool = False


@dataclass
class AppConfig:
    """Top-level application configuration aggregating all subsections."""

    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    status_inbox: StatusInboxConfig = field(default_factory=StatusInboxConfig)
    cli: CliConfig = field(default_factory=CliConfig)
    known_items: KnownItemsConfig = field(default_factory=KnownItemsConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)


def _section(raw: dict, name: str) -> dict:
    # `or {}` fallback handles YAML null values for optional sections
    value = raw.get(name, {}) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping")
    return value


def _names(raw: dict, key: str) -> list[str]:
    value = raw.get(key, []) or []
    if not isinstance(value, list):
        raise ConfigError(f"known_items.{key} must be a list")
    return [str(v) for v in value]


def _number(raw: dict, section: str, key: str, default, cast=int):
    value = raw.get(key, default)
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{section}.{key} must be a number, got {value!r}") from exc


def _validate(config: AppConfig) -> None:
    monitor = config.monitor
    if monitor.dedup_window_ms <= 0:
        raise ConfigError("monitor.dedup_window_ms must be positive")
    if monitor.active_timeout_ms <= 0:
        raise ConfigError("monitor.active_timeout_ms must be positive")
    if monitor.registry_ttl_seconds <= 0:
        raise ConfigError("monitor.registry_ttl_seconds must be positive")
    if monitor.history_capacity <= 0:
        raise ConfigError("monitor.history_capacity must be positive")
    if not 0 <= monitor.history_retain < monitor.history_capacity:
        raise ConfigError(
            "monitor.history_retain must be smaller than monitor.history_capacity"
        )
    if config.status_inbox.poll_interval_ms <= 0:
        raise ConfigError("status_inbox.poll_interval_ms must be positive")
    if config.cli.poll_interval_ms <= 0:
        raise ConfigError("cli.poll_interval_ms must be positive")
    if not config.cli.command:
        raise ConfigError("cli.command is required")


def load_config(path: str) -> AppConfig:
    """Load and validate application configuration from a YAML file.

    Every section is optional; missing keys fall back to the dataclass
    defaults.

    Args:
        path: Filesystem path to the YAML configuration file.

    Returns:
        A fully populated AppConfig instance.

    Raises:
        ConfigError: If the file does not exist, is not a YAML mapping, or
            holds out-of-range values.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {path}")

    with open(config_path) as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")

    monitor_raw = _section(raw, "monitor")
    inbox_raw = _section(raw, "status_inbox")
    cli_raw = _section(raw, "cli")
    items_raw = _section(raw, "known_items")
    debug_raw = _section(raw, "debug")

    defaults = MonitorConfig()
    config = AppConfig(
        monitor=MonitorConfig(
            dedup_window_ms=_number(monitor_raw, "monitor", "dedup_window_ms", defaults.dedup_window_ms),
            active_timeout_ms=_number(monitor_raw, "monitor", "active_timeout_ms", defaults.active_timeout_ms),
            registry_ttl_seconds=_number(
                monitor_raw, "monitor", "registry_ttl_seconds", defaults.registry_ttl_seconds, float
            ),
            history_capacity=_number(monitor_raw, "monitor", "history_capacity", defaults.history_capacity),
            history_retain=_number(monitor_raw, "monitor", "history_retain", defaults.history_retain),
        ),
        status_inbox=StatusInboxConfig(
            enabled=bool(inbox_raw.get("enabled", True)),
            path=inbox_raw.get("path") or default_status_path(),
            poll_interval_ms=_number(inbox_raw, "status_inbox", "poll_interval_ms", 500),
        ),
        cli=CliConfig(
            command=cli_raw.get("command", "claude"),
            default_args=cli_raw.get("default_args", []) or [],
            env=cli_raw.get("env", {}) or {},
            cwd=cli_raw.get("cwd", "."),
            poll_interval_ms=_number(cli_raw, "cli", "poll_interval_ms", 200),
        ),
        known_items=KnownItemsConfig(
            mcps=_names(items_raw, "mcps"),
            plugins=_names(items_raw, "plugins"),
            skills=_names(items_raw, "skills"),
            agents=_names(items_raw, "agents"),
        ),
        debug=DebugConfig(
            enabled=bool(debug_raw.get("enabled", False)),
            trace=bool(debug_raw.get("trace", False)),
            verbose=bool(debug_raw.get("verbose", False)),
        ),
    )
    _validate(config)

    logger.debug("Loaded config from %s", path)
    logger.debug(
        "Monitor dedup=%dms timeout=%dms ttl=%.1fs history=%d/%d",
        config.monitor.dedup_window_ms,
        config.monitor.active_timeout_ms,
        config.monitor.registry_ttl_seconds,
        config.monitor.history_capacity,
        config.monitor.history_retain,
    )
    return config
