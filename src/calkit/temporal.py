"""Boundary values shared by events, recurrence rules and layout.

Event boundaries come in three variants, all expressed with the standard
``datetime`` types:

- plain date: a ``date`` that is not a ``datetime`` (all-day boundaries)
- instant: an aware ``datetime`` without zone identity, kept in UTC
- zoned date-time: an aware ``datetime`` whose ``tzinfo`` is a ``ZoneInfo``

The helpers here never guess a time zone. Converting an instant to a zoned
value or to a calendar date requires an explicit zone from the caller.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time, timedelta
from enum import StrEnum
from typing import Annotated, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import PlainSerializer, PlainValidator, WithJsonSchema

MINUTES_PER_DAY = 24 * 60

_PLAIN_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_FRACTION_PATTERN = re.compile(r"\.(\d{6})\d+")
_ZONED_TEXT_PATTERN = re.compile(r"^(.+)\[([^\]]+)\]$")
_OFFSET_PATTERN = re.compile(r"(Z|z|[+-]\d{2}:?\d{2})$")

Boundary = date | datetime


class BoundaryError(ValueError):
    """Raised when a boundary value is malformed or cannot be converted."""


class BoundaryKind(StrEnum):
    """The three boundary variants an event start/end may take."""

    date = "date"
    instant = "instant"
    zoned = "zoned"


def boundary_kind(value: object) -> BoundaryKind:
    """Classify *value* as a plain date, instant, or zoned date-time."""
    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            raise BoundaryError(
                f"datetime {value.isoformat()} has no time zone context; "
                "pass an aware instant or a zoned value"
            )
        if isinstance(value.tzinfo, ZoneInfo):
            return BoundaryKind.zoned
        return BoundaryKind.instant
    if isinstance(value, date):
        return BoundaryKind.date
    raise BoundaryError(f"unsupported boundary type: {type(value).__name__}")


def zone_id(value: Boundary) -> str | None:
    """Return the IANA identifier carried by a zoned value, else ``None``."""
    if boundary_kind(value) is BoundaryKind.zoned:
        return value.tzinfo.key  # type: ignore[union-attr]
    return None


def resolve_zone(time_zone: str) -> ZoneInfo:
    """Look up an IANA time zone, failing instead of falling back to UTC."""
    if not isinstance(time_zone, str) or not time_zone.strip():
        raise BoundaryError("time zone must be a non-empty IANA identifier")
    try:
        return ZoneInfo(time_zone.strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise BoundaryError(f"unknown IANA time zone: {time_zone}") from exc


def parse_plain_date(value: str) -> date:
    normalized = value.strip() if isinstance(value, str) else ""
    if not _PLAIN_DATE_PATTERN.match(normalized):
        raise BoundaryError(f"invalid calendar date (expected YYYY-MM-DD): {value!r}")
    try:
        return date.fromisoformat(normalized)
    except ValueError as exc:
        raise BoundaryError(f"invalid calendar date: {value!r}") from exc


def parse_instant(value: str) -> datetime:
    """Parse an RFC 3339 timestamp carrying an offset into a UTC instant."""
    if not isinstance(value, str) or not value.strip():
        raise BoundaryError("instant must be a non-empty RFC 3339 string")
    normalized = value.strip()
    if normalized.endswith(("Z", "z")):
        normalized = f"{normalized[:-1]}+00:00"
    normalized = _FRACTION_PATTERN.sub(r".\1", normalized)
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise BoundaryError(f"invalid RFC 3339 timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        raise BoundaryError(f"timestamp {value!r} has no UTC offset")
    return parsed.astimezone(UTC)


def parse_wall_clock(value: str) -> datetime:
    """Parse a local ``YYYY-MM-DDTHH:MM:SS[.fffffff]`` value into a naive datetime."""
    if not isinstance(value, str) or not value.strip():
        raise BoundaryError("wall-clock date-time must be a non-empty string")
    normalized = _FRACTION_PATTERN.sub(r".\1", value.strip())
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise BoundaryError(f"invalid wall-clock date-time: {value!r}") from exc
    if parsed.tzinfo is not None:
        return parsed.replace(tzinfo=None)
    return parsed


def format_instant(value: datetime) -> str:
    """Format a timed value as an RFC 3339 UTC string with a trailing ``Z``."""
    instant = to_instant(value)
    timespec = "seconds" if instant.microsecond == 0 else "microseconds"
    return instant.isoformat(timespec=timespec).replace("+00:00", "Z")


def to_instant(value: Boundary) -> datetime:
    if boundary_kind(value) is BoundaryKind.date:
        raise BoundaryError(f"plain date {value.isoformat()} has no time of day")
    return value.astimezone(UTC)  # type: ignore[union-attr]


def to_zoned(value: Boundary, time_zone: str | None = None) -> datetime:
    """Convert a timed value to a zoned date-time.

    Zoned values keep their own zone unless *time_zone* is given. Instants
    carry no zone identity, so *time_zone* is mandatory for them.
    """
    kind = boundary_kind(value)
    if kind is BoundaryKind.date:
        raise BoundaryError(
            f"plain date {value.isoformat()} cannot become a zoned date-time "
            "without a time of day"
        )
    if time_zone is None:
        if kind is BoundaryKind.instant:
            raise BoundaryError(
                f"instant {format_instant(value)} cannot be converted "  # type: ignore[arg-type]
                "to a zoned date-time without an explicit time zone"
            )
        return value  # type: ignore[return-value]
    return value.astimezone(resolve_zone(time_zone))  # type: ignore[union-attr]


def to_plain_date(value: Boundary, time_zone: str | None = None) -> date:
    """Return the calendar date of *value*, in *time_zone* when given."""
    kind = boundary_kind(value)
    if kind is BoundaryKind.date:
        return value  # type: ignore[return-value]
    if kind is BoundaryKind.instant and time_zone is None:
        raise BoundaryError(
            f"instant {format_instant(value)} cannot be reduced "  # type: ignore[arg-type]
            "to a calendar date without an explicit time zone"
        )
    return to_zoned(value, time_zone).date()


def localize(naive: datetime, zone: ZoneInfo) -> datetime:
    """Attach *zone* to a wall-clock value, moving forward across DST gaps."""
    candidate = naive.replace(tzinfo=zone)
    round_tripped = candidate.astimezone(UTC).astimezone(zone)
    if round_tripped.replace(tzinfo=None) != naive:
        return round_tripped
    return candidate


def combine(day: date, minutes: int, time_zone: str) -> datetime:
    """Build a zoned value *minutes* after local midnight of *day*.

    ``minutes == 1440`` is the following day's midnight.
    """
    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise BoundaryError(f"minutes since midnight out of range: {minutes}")
    zone = resolve_zone(time_zone)
    day_offset, remainder = divmod(int(minutes), MINUTES_PER_DAY)
    local_day = day + timedelta(days=day_offset)
    naive = datetime.combine(local_day, time(remainder // 60, remainder % 60))
    return localize(naive, zone)


def start_of_day(day: date, time_zone: str) -> datetime:
    return combine(day, 0, time_zone)


def boundary_to_utc(value: Boundary, *, time_zone: str | None = None) -> datetime:
    """Project any boundary onto the UTC timeline.

    Plain dates map to local midnight in *time_zone* (UTC when omitted).
    """
    if boundary_kind(value) is BoundaryKind.date:
        return start_of_day(value, time_zone or "UTC").astimezone(UTC)
    return to_instant(value)


def compare_boundaries(a: Boundary, b: Boundary, *, time_zone: str | None = None) -> int:
    left = boundary_to_utc(a, time_zone=time_zone)
    right = boundary_to_utc(b, time_zone=time_zone)
    return (left > right) - (left < right)


def parse_boundary_text(value: str) -> Boundary:
    """Parse the textual boundary form used in JSON payloads.

    - ``2024-05-01`` is a plain date
    - ``2024-05-01T09:00:00-04:00[America/New_York]`` is a zoned date-time
    - ``2024-05-01T13:00:00Z`` (any RFC 3339 offset) is an instant
    """
    if not isinstance(value, str) or not value.strip():
        raise BoundaryError("boundary must be a non-empty string")
    normalized = value.strip()
    if _PLAIN_DATE_PATTERN.match(normalized):
        return parse_plain_date(normalized)
    zoned = _ZONED_TEXT_PATTERN.match(normalized)
    if zoned is None:
        return parse_instant(normalized)
    local_text, zone_name = zoned.group(1), zoned.group(2)
    zone = resolve_zone(zone_name)
    if _OFFSET_PATTERN.search(local_text):
        return parse_instant(local_text).astimezone(zone)
    return localize(parse_wall_clock(local_text), zone)


def format_boundary_text(value: Boundary) -> str:
    kind = boundary_kind(value)
    if kind is BoundaryKind.date:
        return value.isoformat()
    if kind is BoundaryKind.instant:
        return format_instant(value)  # type: ignore[arg-type]
    return f"{value.isoformat()}[{zone_id(value)}]"


def coerce_boundary(value: Any) -> Boundary:
    if isinstance(value, str):
        return parse_boundary_text(value)
    boundary_kind(value)
    return value


BoundaryValue = Annotated[
    date | datetime,
    PlainValidator(coerce_boundary),
    PlainSerializer(format_boundary_text, when_used="json"),
    WithJsonSchema(
        {
            "type": "string",
            "description": "YYYY-MM-DD, RFC 3339 instant, or RFC 3339 with [Zone/Id] suffix",
        }
    ),
]
