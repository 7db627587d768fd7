"""Provider mapper contract shared by the Google and Microsoft adapters."""

from __future__ import annotations

import abc
import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from calkit.models import CalendarEvent, EventInput, EventUpdateInput
from calkit.recurrence import Recurrence

logger = logging.getLogger(__name__)


class ProviderPayloadError(ValueError):
    """Raised when a provider event payload is structurally invalid."""


class UnknownProviderError(KeyError):
    """Raised when no mapper is registered for a provider id."""

    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id
        super().__init__(provider_id)

    def __str__(self) -> str:
        return f"Unknown calendar provider: {self.provider_id}"


class ProviderMapper(abc.ABC):
    """Translate between a provider's wire payloads and the internal event model."""

    @property
    @abc.abstractmethod
    def provider_id(self) -> str:
        """Provider identifier (``google`` or ``microsoft``)."""
        ...

    @abc.abstractmethod
    def parse_boundary(
        self,
        payload: Mapping[str, Any],
        *,
        all_day: bool | None = None,
    ) -> date | datetime:
        """Convert a provider start/end object into a boundary value."""
        ...

    @abc.abstractmethod
    def format_boundary(
        self,
        value: date | datetime,
        *,
        time_zone: str | None = None,
    ) -> dict[str, Any]:
        """Convert a boundary value into the provider start/end object."""
        ...

    @abc.abstractmethod
    def parse_event(
        self,
        payload: Mapping[str, Any],
        *,
        account_id: str,
        calendar_id: str,
    ) -> CalendarEvent | None:
        """Normalize one provider event. Returns ``None`` for cancelled events."""
        ...

    @abc.abstractmethod
    def to_event_body(self, event: EventInput | EventUpdateInput) -> dict[str, Any]:
        """Build the provider request body for a create or update call."""
        ...

    @abc.abstractmethod
    def format_recurrence(
        self,
        recurrence: Recurrence | None,
        *,
        start: date | datetime,
    ) -> Any:
        """Encode recurrence in the provider's wire format."""
        ...

    def parse_events(
        self,
        payloads: Iterable[Mapping[str, Any]],
        *,
        account_id: str,
        calendar_id: str,
    ) -> list[CalendarEvent]:
        events: list[CalendarEvent] = []
        skipped = 0
        for payload in payloads:
            event = self.parse_event(payload, account_id=account_id, calendar_id=calendar_id)
            if event is None:
                skipped += 1
                continue
            events.append(event)
        if skipped:
            logger.debug(
                "Skipped %d cancelled %s event(s) for calendar %s",
                skipped,
                self.provider_id,
                calendar_id,
            )
        return events


def optional_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    return normalized or None


def require_event_id(payload: Mapping[str, Any], provider: str) -> str:
    event_id = optional_text(payload.get("id"))
    if event_id is None:
        raise ProviderPayloadError(f"{provider} event payload is missing a non-empty id")
    return event_id


def require_boundary_payloads(
    payload: Mapping[str, Any],
    *,
    provider: str,
    event_id: str,
) -> tuple[Mapping[str, Any], Mapping[str, Any]]:
    start = payload.get("start")
    end = payload.get("end")
    if not isinstance(start, Mapping) or not isinstance(end, Mapping):
        raise ProviderPayloadError(f"{provider} event '{event_id}' is missing start/end payloads")
    return start, end
