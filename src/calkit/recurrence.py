"""Recurrence descriptions and their RRULE wire encoding.

Providers accept recurrence as a single ``RRULE:`` string (Google) or a
structured pattern (Microsoft Graph, see ``calkit.providers.microsoft``).
This module only emits rules; it never parses provider rule strings.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from calkit.temporal import BoundaryKind, BoundaryValue, boundary_kind, to_instant

logger = logging.getLogger(__name__)

RRULE_PREFIX = "RRULE:"
DEFAULT_FREQUENCY = "daily"
DEFAULT_INTERVAL = 1

Frequency = Literal["daily", "weekly", "monthly", "yearly"]
Weekday = Literal["SU", "MO", "TU", "WE", "TH", "FR", "SA"]

# RRULE part name for each list constraint, in emission order.
_LIST_PARTS: tuple[tuple[str, str], ...] = (
    ("by_day", "BYDAY"),
    ("by_month", "BYMONTH"),
    ("by_month_day", "BYMONTHDAY"),
    ("by_year_day", "BYYEARDAY"),
    ("by_week_no", "BYWEEKNO"),
    ("by_hour", "BYHOUR"),
    ("by_minute", "BYMINUTE"),
    ("by_second", "BYSECOND"),
)


class Recurrence(BaseModel):
    """Structured recurrence description.

    Accepts both snake_case and camelCase keys (``by_day`` / ``byDay``).
    ``count`` and ``until`` are not mutually exclusive here; see
    :func:`encode_recurrence`.
    """

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    frequency: Frequency = DEFAULT_FREQUENCY
    interval: int = Field(default=DEFAULT_INTERVAL, ge=1)
    count: int | None = Field(default=None, ge=1)
    until: BoundaryValue | None = None
    by_day: list[Weekday] | None = None
    by_month: list[Annotated[int, Field(ge=1, le=12)]] | None = None
    by_month_day: list[Annotated[int, Field(ge=1, le=31)]] | None = None
    by_year_day: list[Annotated[int, Field(ge=1, le=366)]] | None = None
    by_week_no: list[Annotated[int, Field(ge=1, le=53)]] | None = None
    by_hour: list[Annotated[int, Field(ge=0, le=23)]] | None = None
    by_minute: list[Annotated[int, Field(ge=0, le=59)]] | None = None
    by_second: list[Annotated[int, Field(ge=0, le=59)]] | None = None

    @field_validator("frequency", mode="before")
    @classmethod
    def _default_frequency(cls, value: Any) -> Any:
        if value is None:
            return DEFAULT_FREQUENCY
        if isinstance(value, str):
            return value.strip().lower() or DEFAULT_FREQUENCY
        return value

    @field_validator("interval", mode="before")
    @classmethod
    def _default_interval(cls, value: Any) -> Any:
        return DEFAULT_INTERVAL if value is None else value

    @field_validator("by_day", mode="before")
    @classmethod
    def _normalize_weekdays(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [item.strip().upper() if isinstance(item, str) else item for item in value]
        return value


def format_until(value: date | datetime) -> str:
    """Format an UNTIL boundary: ``YYYYMMDD`` for dates, ``YYYYMMDDTHHMMSSZ`` otherwise."""
    if boundary_kind(value) is BoundaryKind.date:
        return f"{value.year:04d}{value.month:02d}{value.day:02d}"
    instant = to_instant(value)
    return (
        f"{instant.year:04d}{instant.month:02d}{instant.day:02d}"
        f"T{instant.hour:02d}{instant.minute:02d}{instant.second:02d}Z"
    )


def coerce_recurrence(recurrence: Recurrence | Mapping[str, Any]) -> Recurrence:
    if isinstance(recurrence, Recurrence):
        return recurrence
    return Recurrence.model_validate(dict(recurrence))


def encode_recurrence(recurrence: Recurrence | Mapping[str, Any]) -> str:
    """Encode a recurrence description as a single ``RRULE:`` string.

    Parts are emitted in a fixed order and absent (or empty) constraints are
    left out entirely. When both ``count`` and ``until`` are present both are
    emitted and a warning is logged; providers decide which one wins.
    """
    rule = coerce_recurrence(recurrence)
    if rule.count is not None and rule.until is not None:
        logger.warning(
            "Recurrence sets both COUNT=%s and UNTIL; emitting both", rule.count
        )

    parts = [f"FREQ={rule.frequency.upper()}", f"INTERVAL={rule.interval}"]
    if rule.count is not None:
        parts.append(f"COUNT={rule.count}")
    if rule.until is not None:
        parts.append(f"UNTIL={format_until(rule.until)}")
    for field_name, part_name in _LIST_PARTS:
        values = getattr(rule, field_name)
        if values:
            parts.append(f"{part_name}={','.join(str(item) for item in values)}")
    return RRULE_PREFIX + ";".join(parts)


def recurrence_list(recurrence: Recurrence | Mapping[str, Any] | None) -> list[str]:
    """Return the provider ``recurrence`` array: empty, or exactly one rule."""
    if recurrence is None:
        return []
    return [encode_recurrence(recurrence)]
