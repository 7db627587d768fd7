"""Canonical event shapes shared across providers, layout and drag handling."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from calkit.recurrence import Recurrence
from calkit.temporal import BoundaryKind, BoundaryValue, boundary_kind, compare_boundaries

ProviderId = Literal["google", "microsoft"]
AttendeeStatus = Literal["accepted", "tentative", "declined", "unknown"]
AttendeeType = Literal["required", "optional", "resource"]

DRAFT_ID_PREFIX = "draft-"


class Attendee(BaseModel):
    """Provider-neutral attendee with RSVP state."""

    model_config = ConfigDict(extra="forbid")

    id: str | None = None
    email: str | None = None
    name: str | None = None
    status: AttendeeStatus = "unknown"
    type: AttendeeType = "required"
    comment: str | None = None
    additional_guests: int | None = Field(default=None, ge=0)


class ConferenceEntryPoint(BaseModel):
    model_config = ConfigDict(extra="forbid")

    entry_point_type: Literal["video", "phone", "sip", "more"] = "video"
    uri: str
    meeting_code: str | None = None
    password: str | None = None


class Conference(BaseModel):
    """Conferencing metadata attached to an event (Meet, Teams, Zoom...)."""

    model_config = ConfigDict(extra="forbid")

    conference_id: str | None = None
    name: str | None = None
    join_url: str | None = None
    entry_points: list[ConferenceEntryPoint] = Field(default_factory=list)
    notes: str | None = None


def _validate_boundaries(start: date | datetime, end: date | datetime, all_day: bool) -> None:
    start_kind = boundary_kind(start)
    end_kind = boundary_kind(end)
    start_is_date = start_kind is BoundaryKind.date
    if start_is_date != (end_kind is BoundaryKind.date):
        raise ValueError(
            "start and end must be the same type: both dates or both date-times "
            "(mixed date/date-time boundaries are not allowed)"
        )
    if all_day and not start_is_date:
        raise ValueError("all_day events require plain date start and end values")
    if not all_day and start_is_date:
        raise ValueError("timed events require date-time start and end values")
    if compare_boundaries(end, start) <= 0:
        if all_day:
            raise ValueError("end must be after start for all_day events (end is exclusive)")
        raise ValueError("end must be after start for timed events")


class _EventFields(BaseModel):
    """Display and boundary fields common to real and draft events."""

    title: str = ""
    description: str | None = None
    location: str | None = None
    color: str | None = None
    start: BoundaryValue
    end: BoundaryValue
    all_day: bool = False
    recurrence: Recurrence | None = None
    attendees: list[Attendee] = Field(default_factory=list)
    conference: Conference | None = None

    @field_validator("description", "location", "color")
    @classmethod
    def _normalize_optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    @model_validator(mode="before")
    @classmethod
    def _infer_all_day(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("all_day") is not None:
            return data
        start = data.get("start")
        if isinstance(start, str):
            start_is_date = len(start.strip()) == 10
        else:
            start_is_date = isinstance(start, date) and not isinstance(start, datetime)
        return {**data, "all_day": start_is_date}

    @model_validator(mode="after")
    def _validate_shape(self) -> _EventFields:
        _validate_boundaries(self.start, self.end, self.all_day)
        return self


class CalendarEvent(_EventFields):
    """A provider event normalized into the internal model."""

    id: str = Field(min_length=1)
    provider_id: ProviderId
    account_id: str
    calendar_id: str
    status: str | None = None
    url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    kind: Literal["event"] = "event"


class DraftEvent(_EventFields):
    """An unsaved event created by a drag gesture or a click on an empty slot."""

    id: str = Field(default_factory=lambda: f"{DRAFT_ID_PREFIX}{uuid.uuid4()}")
    account_id: str | None = None
    calendar_id: str | None = None
    kind: Literal["draft"] = "draft"


class EventInput(BaseModel):
    """Payload for creating an event at a provider."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    start: BoundaryValue
    end: BoundaryValue
    all_day: bool | None = None
    recurrence: Recurrence | None = None
    description: str | None = None
    location: str | None = None
    color: str | None = None
    account_id: str
    calendar_id: str
    attendees: list[Attendee] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_shape(self) -> EventInput:
        all_day = self.all_day
        if all_day is None:
            all_day = boundary_kind(self.start) is BoundaryKind.date
            self.all_day = all_day
        _validate_boundaries(self.start, self.end, all_day)
        return self


class EventUpdateInput(EventInput):
    """Payload for replacing an existing provider event."""

    id: str = Field(min_length=1)


def create_draft_event(
    start: date | datetime,
    end: date | datetime,
    *,
    all_day: bool | None = None,
    title: str = "",
    **fields: Any,
) -> DraftEvent:
    """Build a draft with a fresh temporary id."""
    if all_day is None:
        all_day = boundary_kind(start) is BoundaryKind.date
    return DraftEvent(start=start, end=end, all_day=all_day, title=title, **fields)


def is_saved_draft(selected: CalendarEvent | DraftEvent | None, draft_id: str | None) -> bool:
    """True once the selected event is the persisted form of *draft_id*."""
    if selected is None or draft_id is None:
        return False
    return selected.id == draft_id and selected.kind != "draft"
