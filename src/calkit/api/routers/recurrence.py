"""Recurrence encoding endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from calkit.api.models import ApiResponse
from calkit.api.models.calendar import RecurrenceEncodeRequest, RecurrenceEncodeResponse
from calkit.providers import get_mapper
from calkit.recurrence import encode_recurrence, recurrence_list

router = APIRouter(prefix="/api/recurrence", tags=["recurrence"])


@router.post("/encode", response_model=ApiResponse[RecurrenceEncodeResponse])
async def encode(body: RecurrenceEncodeRequest) -> ApiResponse[RecurrenceEncodeResponse]:
    """Encode a recurrence as an RRULE, and optionally in a provider's own format."""
    provider_payload = None
    if body.provider_id is not None:
        if body.start is None:
            raise ValueError("start is required to encode recurrence for a provider")
        mapper = get_mapper(body.provider_id)
        provider_payload = mapper.format_recurrence(body.recurrence, start=body.start)

    return ApiResponse[RecurrenceEncodeResponse](
        data=RecurrenceEncodeResponse(
            rule=encode_recurrence(body.recurrence),
            recurrence=recurrence_list(body.recurrence),
            provider_payload=provider_payload,
        )
    )
