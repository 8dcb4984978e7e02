"""Configuration loading for smartdash.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/smartdash/config.toml → defaults only.
"""

from __future__ import annotations

import logging
import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "raw_format": "hex",
    "scan": "smartctl",
    "smartctl_path": "smartctl",
    "smartctl_timeout": 30,
    "log_level": "WARNING",
    "log_file": "",
    "thresholds": {
        "temperature": {"caution": 50.0, "bad": 55.0},
    },
}

RAW_FORMATS = ("hex", "dec")
SCAN_SOURCES = ("smartctl", "psutil")

_DEFAULT_PATH = Path.home() / ".config" / "smartdash" / "config.toml"


class ConfigError(ValueError):
    """A config value has the wrong type or is out of range."""


def _merge(defaults: dict[str, Any], user: dict[str, Any]) -> dict[str, Any]:
    """Overlay user settings on defaults, table by table at any depth.

    Neither argument is modified; nested tables in the result are fresh copies.
    """
    merged: dict[str, Any] = {}
    for key, value in defaults.items():
        merged[key] = _merge(value, {}) if isinstance(value, dict) else value
    for key, value in user.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check(config: dict[str, Any]) -> None:
    if config["raw_format"] not in RAW_FORMATS:
        raise ConfigError(
            f"raw_format must be one of {', '.join(RAW_FORMATS)}, "
            f"got {config['raw_format']!r}"
        )
    if config["scan"] not in SCAN_SOURCES:
        raise ConfigError(
            f"scan must be one of {', '.join(SCAN_SOURCES)}, got {config['scan']!r}"
        )
    if not isinstance(config["smartctl_path"], str) or not config["smartctl_path"]:
        raise ConfigError("smartctl_path must be a non-empty string")
    timeout = config["smartctl_timeout"]
    if not _is_number(timeout) or timeout <= 0:
        raise ConfigError(f"smartctl_timeout must be a positive number, got {timeout!r}")
    level = config["log_level"]
    if not isinstance(level, str) or level.upper() not in logging.getLevelNamesMapping():
        raise ConfigError(f"log_level is not a logging level name: {level!r}")
    if not isinstance(config["log_file"], str):
        raise ConfigError("log_file must be a string")

    thresholds = config["thresholds"]
    if not isinstance(thresholds, dict) or not isinstance(
        thresholds.get("temperature"), dict
    ):
        raise ConfigError("[thresholds.temperature] must be a table")
    temp = thresholds["temperature"]
    for level_name in ("caution", "bad"):
        if not _is_number(temp[level_name]):
            raise ConfigError(
                f"thresholds.temperature.{level_name} must be a number, "
                f"got {temp[level_name]!r}"
            )
    if temp["caution"] >= temp["bad"]:
        raise ConfigError(
            "thresholds.temperature.caution must be below thresholds.temperature.bad"
        )


def _read(path: Path) -> dict[str, Any]:
    """Parse one TOML file and return it merged over the defaults and checked.

    Raises:
        tomllib.TOMLDecodeError: The file is not valid TOML.
        ConfigError: A value has the wrong type or is out of range.
    """
    config = _merge(DEFAULT_CONFIG, tomllib.loads(path.read_text(encoding="utf-8")))
    _check(config)
    return config


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/smartdash/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed, or
            if any config file holds a bad value.
    """
    if path is None and not _DEFAULT_PATH.is_file():
        return _merge(DEFAULT_CONFIG, {})

    source = path if path is not None else _DEFAULT_PATH
    if not source.is_file():
        print(f"smartdash: config file not found: {source}", file=sys.stderr)
        raise SystemExit(1)
    try:
        return _read(source)
    except tomllib.TOMLDecodeError as e:
        if path is None:
            # A broken file in the default location only earns a warning
            print(
                f"smartdash: warning: ignoring invalid TOML in {source}",
                file=sys.stderr,
            )
            return _merge(DEFAULT_CONFIG, {})
        print(f"smartdash: invalid TOML in {source}: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    except ConfigError as e:
        print(f"smartdash: {source}: {e}", file=sys.stderr)
        raise SystemExit(1) from e


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# smartdash configuration",
        "# Place this file at ~/.config/smartdash/config.toml",
        "",
        "# Raw attribute values: \"hex\" or \"dec\"",
        f'raw_format = "{DEFAULT_CONFIG["raw_format"]}"',
        "# Device enumeration: \"smartctl\" or \"psutil\"",
        f'scan = "{DEFAULT_CONFIG["scan"]}"',
        f'smartctl_path = "{DEFAULT_CONFIG["smartctl_path"]}"',
        f"smartctl_timeout = {DEFAULT_CONFIG['smartctl_timeout']}",
        f'log_level = "{DEFAULT_CONFIG["log_level"]}"',
        f'log_file = "{DEFAULT_CONFIG["log_file"]}"',
        "",
    ]

    # Thresholds
    for metric, levels in DEFAULT_CONFIG["thresholds"].items():
        lines.append(f"[thresholds.{metric}]")
        lines.append(f"caution = {levels['caution']}")
        lines.append(f"bad = {levels['bad']}")
        lines.append("")

    return "\n".join(lines) + "\n"
