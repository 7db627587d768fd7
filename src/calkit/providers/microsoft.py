"""Microsoft Graph (Outlook) payload mapping.

Graph encodes every boundary as a wall-clock ``dateTime`` plus a
``timeZone`` name, which may be a Windows zone name ("Pacific Standard
Time") or an IANA id. ``isAllDay`` marks all-day events, whose boundaries are
local midnights. Recurrence is a ``patternedRecurrence`` object rather than
an RRULE string.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any

from pydantic import ValidationError

from calkit.models import (
    Attendee,
    AttendeeStatus,
    CalendarEvent,
    Conference,
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
from calkit.recurrence import Recurrence, coerce_recurrence
from calkit.temporal import (
    BoundaryError,
    BoundaryKind,
    boundary_kind,
    localize,
    parse_wall_clock,
    resolve_zone,
    to_instant,
    to_plain_date,
    zone_id,
)

logger = logging.getLogger(__name__)

MICROSOFT_PROVIDER_ID = "microsoft"
_PROVIDER_LABEL = "Microsoft Graph"
GRAPH_UTC_ZONE = "UTC"
_WALL_CLOCK_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Windows zone names (CLDR windowsZones, territory 001) to IANA ids.
WINDOWS_TO_IANA: dict[str, str] = {
    "Dateline Standard Time": "Etc/GMT+12",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "Alaskan Standard Time": "America/Anchorage",
    "Pacific Standard Time": "America/Los_Angeles",
    "US Mountain Standard Time": "America/Phoenix",
    "Mountain Standard Time": "America/Denver",
    "Central Standard Time": "America/Chicago",
    "Central Standard Time (Mexico)": "America/Mexico_City",
    "Eastern Standard Time": "America/New_York",
    "SA Pacific Standard Time": "America/Bogota",
    "Atlantic Standard Time": "America/Halifax",
    "Newfoundland Standard Time": "America/St_Johns",
    "E. South America Standard Time": "America/Sao_Paulo",
    "Argentina Standard Time": "America/Buenos_Aires",
    "Greenwich Standard Time": "Atlantic/Reykjavik",
    "GMT Standard Time": "Europe/London",
    "W. Europe Standard Time": "Europe/Berlin",
    "Romance Standard Time": "Europe/Paris",
    "Central Europe Standard Time": "Europe/Budapest",
    "Central European Standard Time": "Europe/Warsaw",
    "GTB Standard Time": "Europe/Bucharest",
    "FLE Standard Time": "Europe/Kiev",
    "E. Europe Standard Time": "Europe/Chisinau",
    "Turkey Standard Time": "Europe/Istanbul",
    "Israel Standard Time": "Asia/Jerusalem",
    "Egypt Standard Time": "Africa/Cairo",
    "South Africa Standard Time": "Africa/Johannesburg",
    "Russian Standard Time": "Europe/Moscow",
    "Arabian Standard Time": "Asia/Dubai",
    "India Standard Time": "Asia/Kolkata",
    "SE Asia Standard Time": "Asia/Bangkok",
    "China Standard Time": "Asia/Shanghai",
    "Singapore Standard Time": "Asia/Singapore",
    "Tokyo Standard Time": "Asia/Tokyo",
    "Korea Standard Time": "Asia/Seoul",
    "E. Australia Standard Time": "Australia/Brisbane",
    "AUS Eastern Standard Time": "Australia/Sydney",
    "New Zealand Standard Time": "Pacific/Auckland",
}

_RESPONSE_STATUS_MAP: dict[str, AttendeeStatus] = {
    "accepted": "accepted",
    "organizer": "accepted",
    "tentativelyAccepted": "tentative",
    "declined": "declined",
    "none": "unknown",
    "notResponded": "unknown",
}
_ATTENDEE_TYPES = {"required", "optional", "resource"}
_GRAPH_WEEKDAYS = {
    "SU": "sunday",
    "MO": "monday",
    "TU": "tuesday",
    "WE": "wednesday",
    "TH": "thursday",
    "FR": "friday",
    "SA": "saturday",
}
_ISO_WEEKDAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")
_UNSUPPORTED_RECURRENCE_PARTS = ("by_year_day", "by_week_no", "by_hour", "by_minute", "by_second")
_ONLINE_MEETING_PROVIDERS = {
    "teamsForBusiness": "Microsoft Teams",
    "skypeForBusiness": "Skype for Business",
    "skypeForConsumer": "Skype",
}


def resolve_graph_zone(name: str) -> str:
    """Map a Graph ``timeZone`` value (Windows or IANA) to an IANA id."""
    normalized = name.strip()
    iana = WINDOWS_TO_IANA.get(normalized)
    if iana is not None:
        return iana
    try:
        resolve_zone(normalized)
    except BoundaryError as exc:
        raise BoundaryError(f"{_PROVIDER_LABEL} returned an unknown time zone: {name}") from exc
    return normalized


def _parse_attendees(payload: Any) -> list[Attendee]:
    if not isinstance(payload, list):
        return []

    attendees: list[Attendee] = []
    for entry in payload:
        if not isinstance(entry, Mapping):
            continue
        address = entry.get("emailAddress")
        if not isinstance(address, Mapping):
            continue
        email = optional_text(address.get("address"))
        if email is None:
            continue
        status_payload = entry.get("status")
        response = (
            optional_text(status_payload.get("response"))
            if isinstance(status_payload, Mapping)
            else None
        )
        attendee_type = optional_text(entry.get("type")) or "required"
        attendees.append(
            Attendee(
                email=email,
                name=optional_text(address.get("name")),
                status=_RESPONSE_STATUS_MAP.get(response or "none", "unknown"),
                type=attendee_type if attendee_type in _ATTENDEE_TYPES else "required",
            )
        )
    return attendees


def _parse_conference(payload: Mapping[str, Any]) -> Conference | None:
    online_meeting = payload.get("onlineMeeting")
    if not isinstance(online_meeting, Mapping):
        return None
    join_url = optional_text(online_meeting.get("joinUrl"))
    provider = optional_text(payload.get("onlineMeetingProvider"))
    return Conference(
        conference_id=optional_text(online_meeting.get("conferenceId")),
        name=_ONLINE_MEETING_PROVIDERS.get(provider or "", provider),
        join_url=join_url,
    )


def _parse_description(payload: Mapping[str, Any]) -> str | None:
    body = payload.get("body")
    if isinstance(body, Mapping) and str(body.get("contentType", "")).lower() == "text":
        return optional_text(body.get("content"))
    return optional_text(payload.get("bodyPreview"))


def _zone_metadata(raw: str | None) -> dict[str, str] | None:
    if raw is None:
        return None
    try:
        return {"raw": raw, "parsed": resolve_graph_zone(raw)}
    except BoundaryError:
        return {"raw": raw}


def _calendar_day(value: date | datetime) -> date:
    if boundary_kind(value) is BoundaryKind.instant:
        return to_plain_date(value, "UTC")
    return to_plain_date(value)


class MicrosoftGraphMapper(ProviderMapper):
    """Microsoft Graph ``/me/events`` mapping."""

    @property
    def provider_id(self) -> str:
        return MICROSOFT_PROVIDER_ID

    def parse_boundary(
        self,
        payload: Mapping[str, Any],
        *,
        all_day: bool | None = None,
    ) -> date | datetime:
        date_time = optional_text(payload.get("dateTime"))
        if date_time is None:
            raise BoundaryError(f"{_PROVIDER_LABEL} boundary is missing a dateTime value")
        wall_clock = parse_wall_clock(date_time)
        if all_day:
            return wall_clock.date()

        time_zone = optional_text(payload.get("timeZone"))
        if time_zone is None or time_zone == GRAPH_UTC_ZONE:
            return wall_clock.replace(tzinfo=UTC)
        return localize(wall_clock, resolve_zone(resolve_graph_zone(time_zone)))

    def format_boundary(
        self,
        value: date | datetime,
        *,
        time_zone: str | None = None,
    ) -> dict[str, Any]:
        kind = boundary_kind(value)
        if kind is BoundaryKind.date:
            return {
                "dateTime": f"{value.isoformat()}T00:00:00",
                "timeZone": time_zone or GRAPH_UTC_ZONE,
            }
        if kind is BoundaryKind.zoned:
            return {"dateTime": value.strftime(_WALL_CLOCK_FORMAT), "timeZone": zone_id(value)}
        if time_zone is not None:
            local = value.astimezone(resolve_zone(time_zone))
            return {"dateTime": local.strftime(_WALL_CLOCK_FORMAT), "timeZone": time_zone}
        return {
            "dateTime": to_instant(value).strftime(_WALL_CLOCK_FORMAT),
            "timeZone": GRAPH_UTC_ZONE,
        }

    def parse_event(
        self,
        payload: Mapping[str, Any],
        *,
        account_id: str,
        calendar_id: str,
    ) -> CalendarEvent | None:
        if payload.get("isCancelled") is True:
            return None

        event_id = require_event_id(payload, _PROVIDER_LABEL)
        start_payload, end_payload = require_boundary_payloads(
            payload, provider=_PROVIDER_LABEL, event_id=event_id
        )
        all_day = payload.get("isAllDay") is True

        metadata: dict[str, Any] = {}
        start_zone = optional_text(payload.get("originalStartTimeZone")) or optional_text(
            start_payload.get("timeZone")
        )
        end_zone = optional_text(payload.get("originalEndTimeZone")) or optional_text(
            end_payload.get("timeZone")
        )
        if (zone := _zone_metadata(start_zone)) is not None:
            metadata["original_start_time_zone"] = zone
        if (zone := _zone_metadata(end_zone)) is not None:
            metadata["original_end_time_zone"] = zone
        if isinstance(payload.get("recurrence"), Mapping):
            metadata["recurrence"] = dict(payload["recurrence"])
        series_master_id = optional_text(payload.get("seriesMasterId"))
        if series_master_id is not None:
            metadata["series_master_id"] = series_master_id

        location = payload.get("location")
        try:
            return CalendarEvent(
                id=event_id,
                provider_id=MICROSOFT_PROVIDER_ID,
                account_id=account_id,
                calendar_id=calendar_id,
                title=optional_text(payload.get("subject")) or "",
                description=_parse_description(payload),
                location=(
                    optional_text(location.get("displayName"))
                    if isinstance(location, Mapping)
                    else None
                ),
                status=optional_text(payload.get("showAs")),
                url=optional_text(payload.get("webLink")),
                start=self.parse_boundary(start_payload, all_day=all_day),
                end=self.parse_boundary(end_payload, all_day=all_day),
                all_day=all_day,
                attendees=_parse_attendees(payload.get("attendees")),
                conference=_parse_conference(payload),
                metadata=metadata,
            )
        except ValidationError as exc:
            raise ProviderPayloadError(
                f"{_PROVIDER_LABEL} event '{event_id}' is invalid: {exc.errors()[0]['msg']}"
            ) from exc

    def to_event_body(self, event: EventInput | EventUpdateInput) -> dict[str, Any]:
        """Translate an event input into a Graph event resource.

        When the event was read from Graph, the original Windows zone names
        kept in ``metadata`` are written back in place of their IANA ids.
        """
        body: dict[str, Any] = {}
        if isinstance(event, EventUpdateInput):
            body["id"] = event.id
        if event.title is not None:
            body["subject"] = event.title
        if event.description is not None:
            body["body"] = {"contentType": "text", "content": event.description}
        if event.location is not None:
            body["location"] = {"displayName": event.location}

        all_day_zone = None
        start_zone_meta = event.metadata.get("original_start_time_zone")
        if event.all_day and isinstance(start_zone_meta, Mapping):
            all_day_zone = start_zone_meta.get("raw")
        body["start"] = self._with_original_zone(
            self.format_boundary(event.start, time_zone=all_day_zone),
            start_zone_meta,
        )
        body["end"] = self._with_original_zone(
            self.format_boundary(event.end, time_zone=all_day_zone),
            event.metadata.get("original_end_time_zone"),
        )
        body["isAllDay"] = bool(event.all_day)

        recurrence = self.format_recurrence(event.recurrence, start=event.start)
        if recurrence is not None:
            body["recurrence"] = recurrence
        if event.attendees:
            body["attendees"] = [
                {
                    "emailAddress": {
                        "address": attendee.email,
                        **({"name": attendee.name} if attendee.name else {}),
                    },
                    "type": attendee.type,
                }
                for attendee in event.attendees
                if attendee.email is not None
            ]
        return body

    @staticmethod
    def _with_original_zone(boundary: dict[str, Any], zone_meta: Any) -> dict[str, Any]:
        if not isinstance(zone_meta, Mapping):
            return boundary
        raw = zone_meta.get("raw")
        if raw and zone_meta.get("parsed") == boundary.get("timeZone"):
            return {**boundary, "timeZone": raw}
        return boundary

    def format_recurrence(
        self,
        recurrence: Recurrence | None,
        *,
        start: date | datetime,
    ) -> dict[str, Any] | None:
        """Encode recurrence as a Graph ``patternedRecurrence``.

        Graph cannot express year-day, week-number or time-of-day constraints;
        those are dropped with a warning.
        """
        if recurrence is None:
            return None
        rule = coerce_recurrence(recurrence)
        start_day = _calendar_day(start)

        dropped = [name for name in _UNSUPPORTED_RECURRENCE_PARTS if getattr(rule, name)]
        if dropped:
            logger.warning(
                "Microsoft Graph recurrence cannot express %s; ignoring", ", ".join(dropped)
            )

        pattern: dict[str, Any] = {"interval": rule.interval}
        if rule.frequency == "daily":
            pattern["type"] = "daily"
        elif rule.frequency == "weekly":
            weekdays = rule.by_day or [_ISO_WEEKDAY_CODES[start_day.weekday()]]
            pattern["type"] = "weekly"
            pattern["daysOfWeek"] = [_GRAPH_WEEKDAYS[code] for code in weekdays]
            pattern["firstDayOfWeek"] = "sunday"
        elif rule.frequency == "monthly":
            if rule.by_day:
                logger.warning("Microsoft Graph monthly recurrence ignores BYDAY without ordinals")
            pattern["type"] = "absoluteMonthly"
            pattern["dayOfMonth"] = rule.by_month_day[0] if rule.by_month_day else start_day.day
        else:
            pattern["type"] = "absoluteYearly"
            pattern["month"] = rule.by_month[0] if rule.by_month else start_day.month
            pattern["dayOfMonth"] = rule.by_month_day[0] if rule.by_month_day else start_day.day

        recurrence_range: dict[str, Any] = {"startDate": start_day.isoformat()}
        if rule.count is not None:
            if rule.until is not None:
                logger.warning("Microsoft Graph recurrence keeps COUNT and drops UNTIL")
            recurrence_range["type"] = "numbered"
            recurrence_range["numberOfOccurrences"] = rule.count
        elif rule.until is not None:
            recurrence_range["type"] = "endDate"
            recurrence_range["endDate"] = _calendar_day(rule.until).isoformat()
        else:
            recurrence_range["type"] = "noEnd"
        start_zone = zone_id(start) if boundary_kind(start) is BoundaryKind.zoned else None
        if start_zone is not None:
            recurrence_range["recurrenceTimeZone"] = start_zone

        return {"pattern": pattern, "range": recurrence_range}
