"""Calendar configuration loading and validation.

Reads calkit.toml, parses the ``[calendar]`` section and its sub-sections,
and returns a validated CalendarConfig dataclass.
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from calkit.temporal import BoundaryError, resolve_zone

CONFIG_FILENAME = "calkit.toml"
CONFIG_ENV_VAR = "CALKIT_CONFIG"

# Pattern matching ${VAR_NAME}.
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_LOG_FORMATS = {"text", "json"}


class ConfigError(Exception):
    """Raised when calendar configuration is missing, malformed, or invalid."""


@dataclass
class LayoutConfig:
    """Lane budgets from [calendar.layout].

    ``month_visible_lanes`` caps event rows per month-grid week before the
    rest collapse into "+N more"; ``week_all_day_visible_lanes`` does the
    same for the all-day row of the week view.
    """

    month_visible_lanes: int = 3
    week_all_day_visible_lanes: int = 10
    min_lanes: int = 0


@dataclass
class LoggingConfig:
    """Logging configuration from [calendar.logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"
    log_root: str | None = None


@dataclass
class ApiConfig:
    host: str = "127.0.0.1"
    port: int = 8400
    cors_origins: list[str] = field(default_factory=list)


@dataclass
class CalendarConfig:
    """Parsed and validated calkit.toml."""

    default_time_zone: str = "UTC"
    week_starts_on: int = 0
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Walks dicts, lists, and strings. Other leaf values are returned
    unchanged.

    Raises
    ------
    ConfigError
        If a referenced environment variable is not set.
    """
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]
    if isinstance(value, str):
        return _resolve_string(value)
    return value


def _resolve_string(s: str) -> str:
    """Replace every ``${VAR_NAME}`` in *s*, reporting all missing names at once."""
    missing: list[str] = []

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            missing.append(var_name)
            return match.group(0)
        return env_value

    result = _ENV_VAR_PATTERN.sub(_replace, s)
    if missing:
        raise ConfigError(
            f"Unresolved environment variable(s) in config value: {', '.join(missing)} "
            f"(original: {s!r})"
        )
    return result


def _section(parent: dict[str, Any], key: str, path: str) -> dict[str, Any]:
    value = parent.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{path}] must be a TOML table")
    return value


def _int_field(section: dict[str, Any], key: str, default: int, path: str, *, minimum: int) -> int:
    raw = section.get(key, default)
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ConfigError(f"{path}.{key} must be an integer, got {raw!r}")
    if raw < minimum:
        raise ConfigError(f"Invalid {path}.{key}: {raw!r}. Must be >= {minimum}.")
    return raw


def _parse_layout(section: dict[str, Any]) -> LayoutConfig:
    path = "calendar.layout"
    return LayoutConfig(
        month_visible_lanes=_int_field(section, "month_visible_lanes", 3, path, minimum=1),
        week_all_day_visible_lanes=_int_field(
            section, "week_all_day_visible_lanes", 10, path, minimum=1
        ),
        min_lanes=_int_field(section, "min_lanes", 0, path, minimum=0),
    )


def _parse_logging(section: dict[str, Any]) -> LoggingConfig:
    level = str(section.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(
            f"Invalid calendar.logging.level: {level!r}. Must be one of {sorted(_LOG_LEVELS)}."
        )
    fmt = str(section.get("format", "text")).lower()
    if fmt not in _LOG_FORMATS:
        raise ConfigError(f"Invalid calendar.logging.format: {fmt!r}. Must be 'text' or 'json'.")
    log_root = section.get("log_root")
    if log_root is not None and (not isinstance(log_root, str) or not log_root.strip()):
        raise ConfigError("calendar.logging.log_root must be a non-empty string when set")
    return LoggingConfig(level=level, format=fmt, log_root=log_root)


def _parse_api(section: dict[str, Any]) -> ApiConfig:
    host = section.get("host", "127.0.0.1")
    if not isinstance(host, str) or not host.strip():
        raise ConfigError("calendar.api.host must be a non-empty string")
    port = _int_field(section, "port", 8400, "calendar.api", minimum=1)
    if port > 65535:
        raise ConfigError(f"Invalid calendar.api.port: {port!r}. Must be <= 65535.")
    origins = section.get("cors_origins", [])
    if not isinstance(origins, list) or not all(isinstance(o, str) for o in origins):
        raise ConfigError("calendar.api.cors_origins must be a list of strings")
    return ApiConfig(host=host.strip(), port=port, cors_origins=list(origins))


def parse_config(data: dict[str, Any]) -> CalendarConfig:
    """Validate already-decoded TOML data."""
    data = resolve_env_vars(data)

    calendar_section = data.get("calendar")
    if not isinstance(calendar_section, dict):
        raise ConfigError("Missing [calendar] section in config")

    default_time_zone = calendar_section.get("default_time_zone", "UTC")
    try:
        resolve_zone(default_time_zone)
    except BoundaryError as exc:
        raise ConfigError(f"Invalid calendar.default_time_zone: {exc}") from exc

    week_starts_on = _int_field(calendar_section, "week_starts_on", 0, "calendar", minimum=0)
    if week_starts_on > 6:
        raise ConfigError(
            f"Invalid calendar.week_starts_on: {week_starts_on!r}. "
            "Must be between 0 (Sunday) and 6 (Saturday)."
        )

    return CalendarConfig(
        default_time_zone=default_time_zone.strip(),
        week_starts_on=week_starts_on,
        layout=_parse_layout(_section(calendar_section, "layout", "calendar.layout")),
        logging=_parse_logging(_section(calendar_section, "logging", "calendar.logging")),
        api=_parse_api(_section(calendar_section, "api", "calendar.api")),
    )


def load_config(path: Path) -> CalendarConfig:
    """Load and validate calkit.toml.

    Parameters
    ----------
    path:
        Either the TOML file itself or a directory containing ``calkit.toml``.

    Raises
    ------
    ConfigError
        If the file is missing, contains invalid TOML, or fails validation.
    """
    toml_path = path / CONFIG_FILENAME if path.is_dir() else path
    if not toml_path.exists():
        raise ConfigError(f"Config file not found: {toml_path}")

    try:
        data = tomllib.loads(toml_path.read_bytes().decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {toml_path}: {exc}") from exc

    return parse_config(data)
