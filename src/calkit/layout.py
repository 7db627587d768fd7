"""Lane layout for overlapping events.

Events are reduced to half-open intervals and packed greedily into the
lowest free lane. Week and month rows use whole-day intervals; day and week
time grids use instants. Layouts are recomputed from the visible event set
on every render and never persisted, so every function here is pure.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from calkit.models import CalendarEvent, DraftEvent
from calkit.temporal import (
    MINUTES_PER_DAY,
    BoundaryKind,
    boundary_kind,
    boundary_to_utc,
    start_of_day,
    to_zoned,
)

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7

LayoutEvent = CalendarEvent | DraftEvent


@dataclass(frozen=True)
class LaneItem:
    """One half-open interval to be placed in a lane.

    ``start``/``end`` must be mutually comparable (dates, or aware
    datetimes) and ``end`` must be after ``start``. ``start_day`` is the day
    the item is reported under when it overflows.
    """

    key: str
    start: Any
    end: Any
    start_day: date | None = None
    payload: Any = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.end > self.start:
            raise ValueError(f"lane item '{self.key}' must end after it starts")

    @property
    def duration(self) -> Any:
        return self.end - self.start


@dataclass(frozen=True)
class LaneLayout:
    """Result of :func:`pack_lanes`."""

    assignments: dict[str, int]
    lanes: list[list[LaneItem]]
    visible_lanes: list[list[LaneItem]]
    overflow: list[LaneItem]
    overflow_by_day: dict[date, int]
    total_lanes: int

    @property
    def used_lanes(self) -> int:
        return len(self.lanes)

    def lane_of(self, key: str) -> int:
        return self.assignments[key]

    def is_overflow(self, key: str) -> bool:
        return self.assignments[key] >= len(self.visible_lanes)


def _lane_sort_key(item: LaneItem) -> tuple[Any, Any, str]:
    # Earliest first, then longest first, then identity for a stable order.
    return (item.start, -item.duration, item.key)


def pack_lanes(
    items: Iterable[LaneItem],
    *,
    max_visible_lanes: int | None = None,
    min_lanes: int = 0,
) -> LaneLayout:
    """Assign each item the lowest lane not occupied by an overlapping item.

    Items on lanes at or beyond ``max_visible_lanes`` are reported as
    overflow, counted per ``start_day``. ``total_lanes`` is the number of
    lanes the renderer should reserve: the visible lanes in use, but never
    fewer than ``min_lanes``.
    """
    if max_visible_lanes is not None and max_visible_lanes < 0:
        raise ValueError("max_visible_lanes must be greater than or equal to 0")
    if min_lanes < 0:
        raise ValueError("min_lanes must be greater than or equal to 0")

    ordered = sorted(items, key=_lane_sort_key)
    lanes: list[list[LaneItem]] = []
    lane_ends: list[Any] = []
    assignments: dict[str, int] = {}

    for item in ordered:
        if item.key in assignments:
            raise ValueError(f"duplicate lane item key: {item.key}")
        # Items arrive by start, so a lane is free once its latest end is <= our start.
        lane_index = next(
            (index for index, lane_end in enumerate(lane_ends) if lane_end <= item.start),
            len(lanes),
        )
        if lane_index == len(lanes):
            lanes.append([])
            lane_ends.append(item.end)
        else:
            lane_ends[lane_index] = max(lane_ends[lane_index], item.end)
        lanes[lane_index].append(item)
        assignments[item.key] = lane_index

    budget = len(lanes) if max_visible_lanes is None else max_visible_lanes
    visible_lanes = lanes[:budget]
    overflow = [item for item in ordered if assignments[item.key] >= budget]
    overflow_counts = Counter(item.start_day for item in overflow if item.start_day is not None)

    return LaneLayout(
        assignments=assignments,
        lanes=lanes,
        visible_lanes=visible_lanes,
        overflow=overflow,
        overflow_by_day=dict(sorted(overflow_counts.items())),
        total_lanes=max(min_lanes, len(visible_lanes)),
    )


# ---------------------------------------------------------------------------
# Calendar windows
# ---------------------------------------------------------------------------


def _js_weekday(day: date) -> int:
    """Weekday with Sunday as 0, matching ``week_starts_on``."""
    return (day.weekday() + 1) % DAYS_PER_WEEK


def week_start(day: date, week_starts_on: int = 0) -> date:
    if not 0 <= week_starts_on < DAYS_PER_WEEK:
        raise ValueError("week_starts_on must be between 0 (Sunday) and 6 (Saturday)")
    return day - timedelta(days=(_js_weekday(day) - week_starts_on) % DAYS_PER_WEEK)


def week_days(day: date, week_starts_on: int = 0) -> list[date]:
    first = week_start(day, week_starts_on)
    return [first + timedelta(days=offset) for offset in range(DAYS_PER_WEEK)]


def month_weeks(day: date, week_starts_on: int = 0) -> list[list[date]]:
    """Whole weeks covering the month of *day*, padded with adjacent-month days."""
    first_of_month = day.replace(day=1)
    next_month = (first_of_month + timedelta(days=32)).replace(day=1)
    weeks: list[list[date]] = []
    cursor = week_start(first_of_month, week_starts_on)
    while cursor < next_month:
        weeks.append([cursor + timedelta(days=offset) for offset in range(DAYS_PER_WEEK)])
        cursor += timedelta(days=DAYS_PER_WEEK)
    return weeks


def event_key(event: LayoutEvent) -> str:
    """Stable identity used to break ordering ties and key lane assignments."""
    if isinstance(event, CalendarEvent):
        return f"{event.account_id}:{event.calendar_id}:{event.id}"
    return event.id


def event_day_span(event: LayoutEvent, time_zone: str) -> tuple[date, date]:
    """Return ``(first_day, end_day_exclusive)`` for *event* in *time_zone*.

    Timed events ending exactly at local midnight do not occupy the
    following day.
    """
    if boundary_kind(event.start) is BoundaryKind.date:
        first_day = event.start
        return first_day, max(event.end, first_day + timedelta(days=1))

    local_start = to_zoned(event.start, time_zone)
    local_end = to_zoned(event.end, time_zone)
    first_day = local_start.date()
    if local_end.time() == time(0) and local_end.date() > first_day:
        return first_day, local_end.date()
    return first_day, max(local_end.date(), first_day) + timedelta(days=1)


def is_all_day_row_event(event: LayoutEvent, time_zone: str) -> bool:
    """All-day and multi-day events render in the all-day row of time grids."""
    if event.all_day:
        return True
    first_day, end_day = event_day_span(event, time_zone)
    return (end_day - first_day).days > 1


def split_events(
    events: Iterable[LayoutEvent],
    time_zone: str,
) -> tuple[list[LayoutEvent], list[LayoutEvent]]:
    """Split events into ``(all_day_row, timed)`` for week and day views."""
    all_day_row: list[LayoutEvent] = []
    timed: list[LayoutEvent] = []
    for event in events:
        (all_day_row if is_all_day_row_event(event, time_zone) else timed).append(event)
    return all_day_row, timed


def grid_position(
    first_day: date,
    end_day: date,
    window_start: date,
    window_days: int = DAYS_PER_WEEK,
) -> tuple[int, int]:
    """Column index and span of a day range clipped to the window."""
    window_end = window_start + timedelta(days=window_days)
    clipped_start = max(first_day, window_start)
    clipped_end = min(end_day, window_end)
    col_start = (clipped_start - window_start).days
    span = max(1, (clipped_end - clipped_start).days)
    return col_start, span


def sort_events_for_display(
    events: Iterable[LayoutEvent],
    *,
    time_zone: str = "UTC",
) -> list[LayoutEvent]:
    """All-day first, then by start, longer first, then title."""

    def _key(event: LayoutEvent) -> tuple[bool, datetime, timedelta, str, str]:
        start = boundary_to_utc(event.start, time_zone=time_zone)
        end = boundary_to_utc(event.end, time_zone=time_zone)
        return (not event.all_day, start, -(end - start), event.title, event_key(event))

    return sorted(events, key=_key)


# ---------------------------------------------------------------------------
# Week / month rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PositionedEvent:
    """An event placed in a week row."""

    event: LayoutEvent
    key: str
    lane: int
    col_start: int
    span: int
    first_day: date
    end_day: date
    continues_before: bool
    continues_after: bool


@dataclass(frozen=True)
class WeekRowLayout:
    days: list[date]
    positioned: list[PositionedEvent]
    overflow: list[PositionedEvent]
    overflow_by_day: dict[date, int]
    hidden_by_day: dict[date, int]
    total_lanes: int

    @property
    def visible_lanes(self) -> list[list[PositionedEvent]]:
        lanes: list[list[PositionedEvent]] = [[] for _ in range(self.total_lanes)]
        for item in self.positioned:
            if item.lane < len(lanes):
                lanes[item.lane].append(item)
        return lanes


def layout_week_row(
    events: Iterable[LayoutEvent],
    row_start: date,
    *,
    time_zone: str,
    max_visible_lanes: int | None = None,
    min_lanes: int = 0,
    days: int = DAYS_PER_WEEK,
) -> WeekRowLayout:
    """Pack day-granular events into lanes for one week row.

    Events are clipped to the row, so an overflowing event that began before
    the row is counted under the row's first day.
    """
    row_end = row_start + timedelta(days=days)
    row_days = [row_start + timedelta(days=offset) for offset in range(days)]
    items: list[LaneItem] = []
    spans: dict[str, tuple[date, date]] = {}

    for event in events:
        first_day, end_day = event_day_span(event, time_zone)
        if end_day <= row_start or first_day >= row_end:
            continue
        key = event_key(event)
        clipped_start = max(first_day, row_start)
        clipped_end = min(end_day, row_end)
        spans[key] = (first_day, end_day)
        items.append(
            LaneItem(
                key=key,
                start=clipped_start,
                end=clipped_end,
                start_day=clipped_start,
                payload=event,
            )
        )

    packed = pack_lanes(items, max_visible_lanes=max_visible_lanes, min_lanes=min_lanes)

    def _position(item: LaneItem) -> PositionedEvent:
        first_day, end_day = spans[item.key]
        col_start, span = grid_position(first_day, end_day, row_start, days)
        return PositionedEvent(
            event=item.payload,
            key=item.key,
            lane=packed.assignments[item.key],
            col_start=col_start,
            span=span,
            first_day=first_day,
            end_day=end_day,
            continues_before=first_day < row_start,
            continues_after=end_day > row_end,
        )

    positioned = [_position(item) for lane in packed.visible_lanes for item in lane]
    positioned.sort(key=lambda placed: (placed.lane, placed.col_start, placed.key))
    overflow = [_position(item) for item in packed.overflow]

    hidden: Counter[date] = Counter()
    for item in packed.overflow:
        day = item.start
        while day < item.end:
            hidden[day] += 1
            day += timedelta(days=1)

    if overflow:
        logger.debug(
            "Week row %s: %d event(s) overflow %s visible lane(s)",
            row_start.isoformat(),
            len(overflow),
            max_visible_lanes,
        )

    return WeekRowLayout(
        days=row_days,
        positioned=positioned,
        overflow=overflow,
        overflow_by_day=packed.overflow_by_day,
        hidden_by_day=dict(sorted(hidden.items())),
        total_lanes=packed.total_lanes,
    )


@dataclass(frozen=True)
class MonthLayout:
    month: date
    weeks: list[WeekRowLayout]


def layout_month(
    events: Sequence[LayoutEvent],
    month_day: date,
    *,
    time_zone: str,
    week_starts_on: int = 0,
    max_visible_lanes: int | None = None,
) -> MonthLayout:
    """Lay out every event of the month grid, one packed row per week."""
    weeks = [
        layout_week_row(
            events,
            week[0],
            time_zone=time_zone,
            max_visible_lanes=max_visible_lanes,
        )
        for week in month_weeks(month_day, week_starts_on)
    ]
    return MonthLayout(month=month_day.replace(day=1), weeks=weeks)


# ---------------------------------------------------------------------------
# Day columns (time grid)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DayColumnEvent:
    """A timed event positioned within one day column.

    ``top`` and ``height`` are fractions of the 24-hour column; ``lane`` and
    ``lane_count`` describe horizontal placement within its overlap cluster.
    """

    event: LayoutEvent
    key: str
    top: float
    height: float
    lane: int
    lane_count: int
    starts_before: bool
    ends_after: bool


def _wall_clock_minutes(value: datetime, day: date) -> int:
    if value.date() > day:
        return MINUTES_PER_DAY
    return value.hour * 60 + value.minute


def layout_day_column(
    events: Iterable[LayoutEvent],
    day: date,
    *,
    time_zone: str,
) -> list[DayColumnEvent]:
    """Position timed events intersecting *day* in its local time column."""
    day_start = start_of_day(day, time_zone).astimezone(UTC)
    day_end = start_of_day(day + timedelta(days=1), time_zone).astimezone(UTC)

    items: list[LaneItem] = []
    for event in events:
        if boundary_kind(event.start) is BoundaryKind.date:
            continue
        start = boundary_to_utc(event.start)
        end = boundary_to_utc(event.end)
        if end <= day_start or start >= day_end:
            continue
        items.append(
            LaneItem(
                key=event_key(event),
                start=max(start, day_start),
                end=min(end, day_end),
                start_day=day,
                payload=event,
            )
        )

    packed = pack_lanes(items)
    ordered = sorted(items, key=_lane_sort_key)

    # Overlap clusters share a lane count so their widths line up.
    lane_counts: dict[str, int] = {}
    cluster: list[LaneItem] = []
    cluster_end: datetime | None = None
    for item in [*ordered, None]:
        if item is None or (cluster_end is not None and item.start >= cluster_end):
            width = max((packed.assignments[member.key] for member in cluster), default=-1) + 1
            for member in cluster:
                lane_counts[member.key] = width
            cluster = []
            cluster_end = None
        if item is None:
            break
        cluster.append(item)
        cluster_end = item.end if cluster_end is None else max(cluster_end, item.end)

    positioned: list[DayColumnEvent] = []
    for item in ordered:
        local_start = to_zoned(item.start, time_zone)
        local_end = to_zoned(item.end, time_zone)
        start_minutes = _wall_clock_minutes(local_start, day)
        end_minutes = _wall_clock_minutes(local_end, day)
        positioned.append(
            DayColumnEvent(
                event=item.payload,
                key=item.key,
                top=start_minutes / MINUTES_PER_DAY,
                height=max(end_minutes - start_minutes, 0) / MINUTES_PER_DAY,
                lane=packed.assignments[item.key],
                lane_count=lane_counts[item.key],
                starts_before=boundary_to_utc(item.payload.start) < day_start,
                ends_after=boundary_to_utc(item.payload.end) > day_end,
            )
        )
    return positioned
