"""Request/response models for the event, recurrence, layout and drag endpoints."""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any

from pydantic import BaseModel, Discriminator, Field, Tag

from calkit.models import CalendarEvent, DraftEvent
from calkit.recurrence import Recurrence
from calkit.temporal import BoundaryValue


def _event_tag(value: Any) -> str:
    if isinstance(value, dict):
        kind = value.get("kind")
        if kind in ("event", "draft"):
            return kind
        return "event" if "provider_id" in value else "draft"
    return getattr(value, "kind", "event")


AnyEvent = Annotated[
    Annotated[CalendarEvent, Tag("event")] | Annotated[DraftEvent, Tag("draft")],
    Discriminator(_event_tag),
]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class NormalizeEventsRequest(BaseModel):
    """Raw provider payloads to convert into the internal event model."""

    provider_id: str
    account_id: str
    calendar_id: str
    events: list[dict[str, Any]] = Field(default_factory=list)


class EventBodyRequest(BaseModel):
    """An event create/update input to serialise for a provider.

    ``event`` carrying an ``id`` is treated as an update.
    """

    provider_id: str
    event: dict[str, Any]


# ---------------------------------------------------------------------------
# Recurrence
# ---------------------------------------------------------------------------


class RecurrenceEncodeRequest(BaseModel):
    recurrence: Recurrence
    provider_id: str | None = None
    start: BoundaryValue | None = None


class RecurrenceEncodeResponse(BaseModel):
    rule: str
    recurrence: list[str]
    provider_payload: Any = None


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


class LayoutRequest(BaseModel):
    """Visible events plus the window to lay out.

    ``time_zone`` and ``week_starts_on`` fall back to the server config.
    """

    events: list[AnyEvent] = Field(default_factory=list)
    day: date
    time_zone: str | None = None
    week_starts_on: int | None = Field(default=None, ge=0, le=6)
    max_visible_lanes: int | None = Field(default=None, ge=1)


class PositionedEventOut(BaseModel):
    key: str
    event: AnyEvent
    lane: int
    col_start: int
    span: int
    continues_before: bool
    continues_after: bool


class WeekRowOut(BaseModel):
    days: list[date]
    events: list[PositionedEventOut]
    overflow: list[str]
    overflow_by_day: dict[date, int]
    hidden_by_day: dict[date, int]
    total_lanes: int


class DayColumnEventOut(BaseModel):
    key: str
    event: AnyEvent
    top: float
    height: float
    lane: int
    lane_count: int
    starts_before: bool
    ends_after: bool


class DayColumnOut(BaseModel):
    day: date
    events: list[DayColumnEventOut]


class WeekLayoutResponse(BaseModel):
    time_zone: str
    all_day: WeekRowOut
    columns: list[DayColumnOut]


class MonthLayoutResponse(BaseModel):
    time_zone: str
    month: date
    weeks: list[WeekRowOut]


class DayLayoutResponse(BaseModel):
    time_zone: str
    all_day: WeekRowOut
    column: DayColumnOut


# ---------------------------------------------------------------------------
# Drag
# ---------------------------------------------------------------------------


class DragSnapRequest(BaseModel):
    offset: float
    column_height: float
    day: date | None = None
    time_zone: str | None = None


class DragSnapResponse(BaseModel):
    minutes: float
    snapped_minutes: int
    floored_minutes: int
    rounded_minutes: int
    start: BoundaryValue | None = None


class DragCreateRequest(BaseModel):
    """A complete drag-to-create gesture within one day column."""

    day: date
    time_zone: str | None = None
    column_height: float
    start_offset: float
    end_offset: float


class DragCreateResponse(BaseModel):
    phase: str
    draft: DraftEvent | None = None
    start_minutes: int | None = None
    duration_minutes: int | None = None


class DragMoveRequest(BaseModel):
    event: AnyEvent
    target_day: date
    target_hours: float | None = Field(default=None, ge=0, le=24)
    display_time_zone: str | None = None


class DragMoveResponse(BaseModel):
    moved: bool
    event: AnyEvent | None = None
