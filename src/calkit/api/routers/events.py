"""Provider event normalization endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter

from calkit.api.models import ApiMeta, ApiResponse
from calkit.api.models.calendar import EventBodyRequest, NormalizeEventsRequest
from calkit.models import CalendarEvent, EventInput, EventUpdateInput
from calkit.providers import get_mapper

router = APIRouter(prefix="/api/events", tags=["events"])
logger = logging.getLogger(__name__)


@router.post("/normalize", response_model=ApiResponse[list[CalendarEvent]])
async def normalize_events(body: NormalizeEventsRequest) -> ApiResponse[list[CalendarEvent]]:
    """Convert raw provider payloads into internal events; cancelled events are dropped."""
    mapper = get_mapper(body.provider_id)
    events = mapper.parse_events(
        body.events,
        account_id=body.account_id,
        calendar_id=body.calendar_id,
    )
    logger.info(
        "Normalized %d/%d %s event(s) for calendar %s",
        len(events),
        len(body.events),
        mapper.provider_id,
        body.calendar_id,
    )
    return ApiResponse[list[CalendarEvent]](
        data=events,
        meta=ApiMeta(provider_id=mapper.provider_id, skipped=len(body.events) - len(events)),
    )


@router.post("/body", response_model=ApiResponse[dict[str, Any]])
async def event_body(body: EventBodyRequest) -> ApiResponse[dict[str, Any]]:
    """Serialise an event input into the provider's create/update request body."""
    mapper = get_mapper(body.provider_id)
    if "id" in body.event:
        event_input: EventInput = EventUpdateInput.model_validate(body.event)
    else:
        event_input = EventInput.model_validate(body.event)
    return ApiResponse[dict[str, Any]](
        data=mapper.to_event_body(event_input),
        meta=ApiMeta(
            provider_id=mapper.provider_id,
            update=isinstance(event_input, EventUpdateInput),
        ),
    )
