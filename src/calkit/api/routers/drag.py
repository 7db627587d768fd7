"""Drag snapping endpoints for time-grid interactions."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from calkit.api.deps import get_calendar_config
from calkit.api.models import ApiMeta, ApiResponse
from calkit.api.models.calendar import (
    DragCreateRequest,
    DragCreateResponse,
    DragMoveRequest,
    DragMoveResponse,
    DragSnapRequest,
    DragSnapResponse,
)
from calkit.config import CalendarConfig
from calkit.drag import (
    DragState,
    DragToCreate,
    floor_to_increment,
    minutes_from_offset,
    move_event,
    round_half_expand,
    snap_minutes,
)
from calkit.temporal import MINUTES_PER_DAY, combine

router = APIRouter(prefix="/api/drag", tags=["drag"])
logger = logging.getLogger(__name__)


@router.post("/snap", response_model=ApiResponse[DragSnapResponse])
async def snap(
    body: DragSnapRequest,
    config: CalendarConfig = Depends(get_calendar_config),
) -> ApiResponse[DragSnapResponse]:
    """Snap a pointer offset within a 24-hour column to a quarter hour."""
    minutes = minutes_from_offset(body.offset, body.column_height)
    if minutes is None:
        raise ValueError("column_height must be a positive, finite number")

    snapped = snap_minutes(minutes)
    start = None
    if body.day is not None:
        start = combine(body.day, snapped, body.time_zone or config.default_time_zone)
    return ApiResponse[DragSnapResponse](
        data=DragSnapResponse(
            minutes=minutes,
            snapped_minutes=snapped,
            floored_minutes=floor_to_increment(minutes),
            rounded_minutes=min(round_half_expand(minutes), MINUTES_PER_DAY),
            start=start,
        )
    )


@router.post("/create", response_model=ApiResponse[DragCreateResponse])
async def create(
    body: DragCreateRequest,
    config: CalendarConfig = Depends(get_calendar_config),
) -> ApiResponse[DragCreateResponse]:
    """Run a complete drag-to-create gesture and return the resulting draft, if any."""
    controller = DragToCreate(body.day, body.time_zone or config.default_time_zone)
    transition = controller.start(DragState(), body.start_offset, body.column_height)
    transition = controller.move(transition.state, body.end_offset, body.column_height)
    transition = controller.end(transition.state)

    draft = next(
        (action.event for action in transition.actions if action.type == "draft"),
        None,
    )
    preview = transition.preview
    return ApiResponse[DragCreateResponse](
        data=DragCreateResponse(
            phase=transition.state.phase,
            draft=draft,
            start_minutes=preview.start_minutes if preview is not None else None,
            duration_minutes=preview.duration_minutes if preview is not None else None,
        )
    )


@router.post("/move", response_model=ApiResponse[DragMoveResponse])
async def move(
    body: DragMoveRequest,
    config: CalendarConfig = Depends(get_calendar_config),
) -> ApiResponse[DragMoveResponse]:
    """Drop an event on a new day (and optionally hour), preserving its duration."""
    moved = move_event(
        body.event,
        target_day=body.target_day,
        target_hours=body.target_hours,
        display_time_zone=body.display_time_zone or config.default_time_zone,
    )
    if moved is None:
        logger.debug("Drag move of %s left the event unchanged", body.event.id)
    return ApiResponse[DragMoveResponse](
        data=DragMoveResponse(moved=moved is not None, event=moved),
        meta=ApiMeta(event_id=body.event.id),
    )
