"""Lane layout endpoints for month, week and day views."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends

from calkit.api.deps import get_calendar_config
from calkit.api.models import ApiMeta, ApiResponse
from calkit.api.models.calendar import (
    DayColumnEventOut,
    DayColumnOut,
    DayLayoutResponse,
    LayoutRequest,
    MonthLayoutResponse,
    PositionedEventOut,
    WeekLayoutResponse,
    WeekRowOut,
)
from calkit.config import CalendarConfig
from calkit.layout import (
    DayColumnEvent,
    WeekRowLayout,
    layout_day_column,
    layout_month,
    layout_week_row,
    split_events,
    week_start,
)
from calkit.temporal import resolve_zone

router = APIRouter(prefix="/api/layout", tags=["layout"])
logger = logging.getLogger(__name__)


def _row_out(row: WeekRowLayout) -> WeekRowOut:
    return WeekRowOut(
        days=row.days,
        events=[
            PositionedEventOut(
                key=placed.key,
                event=placed.event,
                lane=placed.lane,
                col_start=placed.col_start,
                span=placed.span,
                continues_before=placed.continues_before,
                continues_after=placed.continues_after,
            )
            for placed in row.positioned
        ],
        overflow=[placed.key for placed in row.overflow],
        overflow_by_day=row.overflow_by_day,
        hidden_by_day=row.hidden_by_day,
        total_lanes=row.total_lanes,
    )


def _column_out(day: date, positioned: list[DayColumnEvent]) -> DayColumnOut:
    return DayColumnOut(
        day=day,
        events=[
            DayColumnEventOut(
                key=item.key,
                event=item.event,
                top=item.top,
                height=item.height,
                lane=item.lane,
                lane_count=item.lane_count,
                starts_before=item.starts_before,
                ends_after=item.ends_after,
            )
            for item in positioned
        ],
    )


def _time_zone(body: LayoutRequest, config: CalendarConfig) -> str:
    time_zone = body.time_zone or config.default_time_zone
    resolve_zone(time_zone)
    return time_zone


@router.post("/week", response_model=ApiResponse[WeekLayoutResponse])
async def week_layout(
    body: LayoutRequest,
    config: CalendarConfig = Depends(get_calendar_config),
) -> ApiResponse[WeekLayoutResponse]:
    """All-day row lanes plus one time-grid column per day of the week containing ``day``."""
    time_zone = _time_zone(body, config)
    week_starts_on = config.week_starts_on if body.week_starts_on is None else body.week_starts_on
    first_day = week_start(body.day, week_starts_on)
    all_day_events, timed_events = split_events(body.events, time_zone)

    all_day_row = layout_week_row(
        all_day_events,
        first_day,
        time_zone=time_zone,
        max_visible_lanes=body.max_visible_lanes or config.layout.week_all_day_visible_lanes,
        min_lanes=config.layout.min_lanes,
    )
    columns = [
        _column_out(day, layout_day_column(timed_events, day, time_zone=time_zone))
        for day in all_day_row.days
    ]
    return ApiResponse[WeekLayoutResponse](
        data=WeekLayoutResponse(
            time_zone=time_zone,
            all_day=_row_out(all_day_row),
            columns=columns,
        ),
        meta=ApiMeta(event_count=len(body.events)),
    )


@router.post("/month", response_model=ApiResponse[MonthLayoutResponse])
async def month_layout(
    body: LayoutRequest,
    config: CalendarConfig = Depends(get_calendar_config),
) -> ApiResponse[MonthLayoutResponse]:
    """One packed row per week of the month containing ``day``."""
    time_zone = _time_zone(body, config)
    week_starts_on = config.week_starts_on if body.week_starts_on is None else body.week_starts_on
    month = layout_month(
        body.events,
        body.day,
        time_zone=time_zone,
        week_starts_on=week_starts_on,
        max_visible_lanes=body.max_visible_lanes or config.layout.month_visible_lanes,
    )
    return ApiResponse[MonthLayoutResponse](
        data=MonthLayoutResponse(
            time_zone=time_zone,
            month=month.month,
            weeks=[_row_out(row) for row in month.weeks],
        ),
        meta=ApiMeta(event_count=len(body.events)),
    )


@router.post("/day", response_model=ApiResponse[DayLayoutResponse])
async def day_layout(
    body: LayoutRequest,
    config: CalendarConfig = Depends(get_calendar_config),
) -> ApiResponse[DayLayoutResponse]:
    time_zone = _time_zone(body, config)
    all_day_events, timed_events = split_events(body.events, time_zone)
    all_day_row = layout_week_row(
        all_day_events,
        body.day,
        time_zone=time_zone,
        max_visible_lanes=body.max_visible_lanes or config.layout.week_all_day_visible_lanes,
        min_lanes=config.layout.min_lanes,
        days=1,
    )
    column = layout_day_column(timed_events, body.day, time_zone=time_zone)
    logger.debug(
        "Day layout %s: %d all-day, %d timed event(s)",
        body.day.isoformat(),
        len(all_day_row.positioned) + len(all_day_row.overflow),
        len(column),
    )
    return ApiResponse[DayLayoutResponse](
        data=DayLayoutResponse(
            time_zone=time_zone,
            all_day=_row_out(all_day_row),
            column=_column_out(body.day, column),
        ),
        meta=ApiMeta(event_count=len(body.events)),
    )

