"""Google Calendar payload mapping.

Google encodes boundaries as ``{"date": "YYYY-MM-DD"}`` for all-day events
and ``{"dateTime": <RFC 3339>, "timeZone": <IANA id>?}`` for timed events.
A ``timeZone`` yields a zoned value, its absence an instant.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError

from calkit.models import (
    Attendee,
    AttendeeStatus,
    CalendarEvent,
    Conference,
    ConferenceEntryPoint,
    EventInput,
    EventUpdateInput,
)
from calkit.providers.base import (
    ProviderMapper,
    ProviderPayloadError,
    optional_text,
    require_boundary_payloads,
    require_event_id,
)
from calkit.recurrence import Recurrence, recurrence_list
from calkit.temporal import (
    BoundaryError,
    BoundaryKind,
    boundary_kind,
    format_instant,
    parse_instant,
    parse_plain_date,
    resolve_zone,
    zone_id,
)

logger = logging.getLogger(__name__)

GOOGLE_PROVIDER_ID = "google"
_PROVIDER_LABEL = "Google Calendar"

_RESPONSE_STATUS_MAP: dict[str, AttendeeStatus] = {
    "accepted": "accepted",
    "tentative": "tentative",
    "declined": "declined",
    "needsAction": "unknown",
}
_ENTRY_POINT_TYPES = {"video", "phone", "sip", "more"}


def _first_recurrence_rule(payload: Any) -> str | None:
    if not isinstance(payload, list):
        return None
    for entry in payload:
        if isinstance(entry, str) and entry.strip():
            return entry.strip()
    return None


def _parse_attendees(payload: Any) -> list[Attendee]:
    """Parse a Google attendees array into provider-neutral attendees."""
    if not isinstance(payload, list):
        return []

    attendees: list[Attendee] = []
    for entry in payload:
        if not isinstance(entry, Mapping):
            continue
        email = optional_text(entry.get("email"))
        if email is None:
            continue

        if entry.get("resource") is True:
            attendee_type = "resource"
        elif entry.get("optional") is True:
            attendee_type = "optional"
        else:
            attendee_type = "required"

        response_raw = optional_text(entry.get("responseStatus")) or "needsAction"
        additional_guests = entry.get("additionalGuests")
        if not isinstance(additional_guests, int) or isinstance(additional_guests, bool):
            additional_guests = None

        attendees.append(
            Attendee(
                id=optional_text(entry.get("id")),
                email=email,
                name=optional_text(entry.get("displayName")),
                status=_RESPONSE_STATUS_MAP.get(response_raw, "unknown"),
                type=attendee_type,
                comment=optional_text(entry.get("comment")),
                additional_guests=additional_guests,
            )
        )
    return attendees


def _parse_conference(payload: Any) -> Conference | None:
    if not isinstance(payload, Mapping):
        return None

    entry_points: list[ConferenceEntryPoint] = []
    raw_entry_points = payload.get("entryPoints")
    for entry in raw_entry_points if isinstance(raw_entry_points, list) else []:
        if not isinstance(entry, Mapping):
            continue
        uri = optional_text(entry.get("uri"))
        entry_type = optional_text(entry.get("entryPointType"))
        if uri is None or entry_type not in _ENTRY_POINT_TYPES:
            continue
        entry_points.append(
            ConferenceEntryPoint(
                entry_point_type=entry_type,
                uri=uri,
                meeting_code=optional_text(entry.get("meetingCode")),
                password=optional_text(entry.get("password")),
            )
        )

    solution = payload.get("conferenceSolution")
    name = optional_text(solution.get("name")) if isinstance(solution, Mapping) else None
    join_url = next(
        (point.uri for point in entry_points if point.entry_point_type == "video"),
        None,
    )
    return Conference(
        conference_id=optional_text(payload.get("conferenceId")),
        name=name,
        join_url=join_url,
        entry_points=entry_points,
        notes=optional_text(payload.get("notes")),
    )


def _attendees_to_google(attendees: list[Attendee]) -> list[dict[str, Any]]:
    """Only writable attendee fields are sent; response status is owned by the attendee."""
    result: list[dict[str, Any]] = []
    for attendee in attendees:
        if attendee.email is None:
            continue
        entry: dict[str, Any] = {"email": attendee.email}
        if attendee.name is not None:
            entry["displayName"] = attendee.name
        if attendee.type == "optional":
            entry["optional"] = True
        elif attendee.type == "resource":
            entry["resource"] = True
        result.append(entry)
    return result


class GoogleCalendarMapper(ProviderMapper):
    """Google Calendar v3 event mapping."""

    @property
    def provider_id(self) -> str:
        return GOOGLE_PROVIDER_ID

    def parse_boundary(
        self,
        payload: Mapping[str, Any],
        *,
        all_day: bool | None = None,
    ) -> date | datetime:
        date_time = optional_text(payload.get("dateTime"))
        if date_time is not None:
            instant = parse_instant(date_time)
            time_zone = optional_text(payload.get("timeZone"))
            if time_zone is None:
                return instant
            return instant.astimezone(resolve_zone(time_zone))

        date_value = optional_text(payload.get("date"))
        if date_value is not None:
            return parse_plain_date(date_value)

        raise BoundaryError(f"{_PROVIDER_LABEL} boundary is missing dateTime or date values")

    def format_boundary(
        self,
        value: date | datetime,
        *,
        time_zone: str | None = None,
    ) -> dict[str, Any]:
        kind = boundary_kind(value)
        if kind is BoundaryKind.date:
            return {"date": value.isoformat()}
        if kind is BoundaryKind.zoned:
            return {"dateTime": format_instant(value), "timeZone": zone_id(value)}
        body: dict[str, Any] = {"dateTime": format_instant(value)}
        if time_zone is not None:
            resolve_zone(time_zone)
            body["timeZone"] = time_zone
        return body

    def parse_event(
        self,
        payload: Mapping[str, Any],
        *,
        account_id: str,
        calendar_id: str,
    ) -> CalendarEvent | None:
        status = optional_text(payload.get("status"))
        if status is not None and status.lower() == "cancelled":
            return None

        event_id = require_event_id(payload, _PROVIDER_LABEL)
        start_payload, end_payload = require_boundary_payloads(
            payload, provider=_PROVIDER_LABEL, event_id=event_id
        )
        all_day = optional_text(start_payload.get("dateTime")) is None

        metadata: dict[str, Any] = {}
        recurrence_rule = _first_recurrence_rule(payload.get("recurrence"))
        if recurrence_rule is not None:
            metadata["recurrence_rule"] = recurrence_rule
        recurring_event_id = optional_text(payload.get("recurringEventId"))
        if recurring_event_id is not None:
            metadata["recurring_event_id"] = recurring_event_id

        try:
            return CalendarEvent(
                id=event_id,
                provider_id=GOOGLE_PROVIDER_ID,
                account_id=account_id,
                calendar_id=calendar_id,
                title=optional_text(payload.get("summary")) or "",
                description=optional_text(payload.get("description")),
                location=optional_text(payload.get("location")),
                color=optional_text(payload.get("colorId")),
                status=status,
                url=optional_text(payload.get("htmlLink")),
                start=self.parse_boundary(start_payload, all_day=all_day),
                end=self.parse_boundary(end_payload, all_day=all_day),
                all_day=all_day,
                attendees=_parse_attendees(payload.get("attendees")),
                conference=_parse_conference(payload.get("conferenceData")),
                metadata=metadata,
            )
        except ValidationError as exc:
            raise ProviderPayloadError(
                f"{_PROVIDER_LABEL} event '{event_id}' is invalid: {exc.errors()[0]['msg']}"
            ) from exc

    def to_event_body(self, event: EventInput | EventUpdateInput) -> dict[str, Any]:
        """Translate an event input into a Google Calendar API event body."""
        body: dict[str, Any] = {}
        if isinstance(event, EventUpdateInput):
            body["id"] = event.id
        if event.title is not None:
            body["summary"] = event.title
        if event.description is not None:
            body["description"] = event.description
        if event.location is not None:
            body["location"] = event.location
        if event.color is not None:
            body["colorId"] = event.color
        body["start"] = self.format_boundary(event.start)
        body["end"] = self.format_boundary(event.end)
        body["recurrence"] = self.format_recurrence(event.recurrence, start=event.start)
        if event.attendees:
            body["attendees"] = _attendees_to_google(event.attendees)
        return body

    def format_recurrence(
        self,
        recurrence: Recurrence | None,
        *,
        start: date | datetime,
    ) -> list[str]:
        return recurrence_list(recurrence)
