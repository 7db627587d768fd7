"""Pointer snapping for drag-to-create and drag-to-move.

A day column represents 24 hours. Pointer offsets are converted linearly to
minutes since local midnight and snapped to 15-minute boundaries.

Drag-to-create is a reducer: every handler takes the current
:class:`DragState` and returns a :class:`DragTransition` carrying the next
state, the actions the caller should dispatch, and the preview to render.
Nothing is held between calls, so a finished or abandoned drag cannot leak
into the next one.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import UTC, date, datetime, timedelta
from typing import Literal

from calkit.models import CalendarEvent, DraftEvent, create_draft_event, is_saved_draft
from calkit.temporal import (
    MINUTES_PER_DAY,
    BoundaryKind,
    boundary_kind,
    combine,
    localize,
    resolve_zone,
    to_instant,
    to_zoned,
    zone_id,
)

logger = logging.getLogger(__name__)

SNAP_INCREMENT_MINUTES = 15

# Fraction of an hour below which a value snaps to the given minute.
_SNAP_THRESHOLDS: tuple[tuple[float, int], ...] = (
    (0.125, 0),
    (0.375, 15),
    (0.625, 30),
    (0.875, 45),
)

DragPhase = Literal["idle", "dragging", "committed", "cancelled"]


def minutes_from_offset(offset: float | None, column_height: float | None) -> float | None:
    """Map a vertical pointer offset to minutes since midnight, clamped to [0, 1440].

    Returns ``None`` when the pointer data cannot be used.
    """
    if offset is None or column_height is None:
        return None
    if not math.isfinite(offset) or not math.isfinite(column_height) or column_height <= 0:
        return None
    minutes = offset / column_height * MINUTES_PER_DAY
    return min(max(minutes, 0.0), float(MINUTES_PER_DAY))


def snap_minutes(minutes: float) -> int:
    """Snap to the nearest quarter hour; the last eighth rolls into the next hour."""
    whole_hours, remainder = divmod(max(minutes, 0.0), 60)
    fraction = remainder / 60
    hour_start = int(whole_hours) * 60
    for threshold, snapped in _SNAP_THRESHOLDS:
        if fraction < threshold:
            return min(hour_start + snapped, MINUTES_PER_DAY)
    return min(hour_start + 60, MINUTES_PER_DAY)


def snap_hour_fraction(hours: float) -> float:
    return snap_minutes(hours * 60) / 60


def floor_to_increment(minutes: float, increment: int = SNAP_INCREMENT_MINUTES) -> int:
    return int(math.floor(minutes / increment) * increment)


def round_half_expand(minutes: float, increment: int = SNAP_INCREMENT_MINUTES) -> int:
    """Round to the nearest increment, ties away from zero."""
    steps = math.floor(abs(minutes) / increment + 0.5)
    return int(math.copysign(steps * increment, minutes))


# ---------------------------------------------------------------------------
# Drag-to-create
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DragState:
    phase: DragPhase = "idle"
    initial_minutes: float | None = None
    current_minutes: float | None = None
    cancelled: bool = False
    draft_id: str | None = None
    preview_persistent: bool = False


@dataclass(frozen=True)
class DragPreview:
    start_minutes: int
    duration_minutes: int

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes


@dataclass(frozen=True)
class DraftAction:
    type: Literal["draft", "unselect"]
    event: DraftEvent | None = None


@dataclass(frozen=True)
class DragTransition:
    state: DragState
    actions: tuple[DraftAction, ...] = ()
    preview: DragPreview | None = None


def snapped_preview(initial_minutes: float, current_minutes: float) -> DragPreview:
    """Snapped start (the lesser bound) and a non-negative snapped duration."""
    low, high = sorted((initial_minutes, current_minutes))
    start = snap_minutes(low)
    return DragPreview(start_minutes=start, duration_minutes=max(snap_minutes(high) - start, 0))


class DragToCreate:
    """Drag-to-create reducer for one day column.

    ``day`` and ``time_zone`` identify the calendar date the column shows;
    committed drafts are zoned in ``time_zone``.
    """

    def __init__(
        self,
        day: date,
        time_zone: str,
        *,
        increment: int = SNAP_INCREMENT_MINUTES,
    ) -> None:
        if increment <= 0 or MINUTES_PER_DAY % increment:
            raise ValueError(f"increment must evenly divide a day, got {increment}")
        resolve_zone(time_zone)
        self.day = day
        self.time_zone = time_zone
        self.increment = increment

    def start(
        self,
        state: DragState,
        offset: float | None,
        column_height: float | None,
    ) -> DragTransition:
        minutes = minutes_from_offset(offset, column_height)
        if minutes is None:
            return self._abort("start")
        # A new gesture replaces any draft preview still waiting to be saved.
        actions = (DraftAction(type="unselect"),) if state.preview_persistent else ()
        dragging = DragState(phase="dragging", initial_minutes=minutes, current_minutes=minutes)
        return DragTransition(
            state=dragging,
            actions=actions,
            preview=snapped_preview(minutes, minutes),
        )

    def move(
        self,
        state: DragState,
        offset: float | None,
        column_height: float | None,
    ) -> DragTransition:
        if state.phase != "dragging" or state.cancelled:
            return DragTransition(state=state)
        minutes = minutes_from_offset(offset, column_height)
        if minutes is None or state.initial_minutes is None:
            return self._abort("move")
        moved = replace(state, current_minutes=minutes)
        return DragTransition(state=moved, preview=snapped_preview(state.initial_minutes, minutes))

    def end(
        self,
        state: DragState,
        offset: float | None = None,
        column_height: float | None = None,
    ) -> DragTransition:
        """Finish the gesture, committing a draft unless the drag went nowhere.

        Without pointer data the last position seen by :meth:`move` is used.
        """
        if state.phase != "dragging" or state.cancelled:
            return DragTransition(state=state)

        current = state.current_minutes
        if offset is not None or column_height is not None:
            current = minutes_from_offset(offset, column_height)
        initial = state.initial_minutes
        if current is None or initial is None:
            return self._abort("end")
        if current == initial:
            logger.debug("Drag-to-create on %s cancelled: zero distance", self.day.isoformat())
            return DragTransition(state=DragState(phase="cancelled", cancelled=True))

        low, high = sorted((initial, current))
        start_minutes = floor_to_increment(low, self.increment)
        end_minutes = min(round_half_expand(high, self.increment), MINUTES_PER_DAY)
        if end_minutes <= start_minutes:
            end_minutes = start_minutes + self.increment

        start = combine(self.day, start_minutes, self.time_zone)
        end = combine(self.day, end_minutes, self.time_zone)
        if end <= start:
            # Both bounds fell into the same DST transition.
            end = (start.astimezone(UTC) + timedelta(minutes=self.increment)).astimezone(
                start.tzinfo
            )

        draft = create_draft_event(start, end, all_day=False)
        committed = DragState(phase="committed", draft_id=draft.id, preview_persistent=True)
        return DragTransition(
            state=committed,
            actions=(DraftAction(type="draft", event=draft),),
            preview=DragPreview(
                start_minutes=start_minutes,
                duration_minutes=end_minutes - start_minutes,
            ),
        )

    def escape(self, state: DragState) -> DragTransition:
        if state.phase == "dragging":
            return DragTransition(state=DragState(phase="cancelled", cancelled=True))
        if state.phase == "committed":
            return DragTransition(state=DragState(), actions=(DraftAction(type="unselect"),))
        return DragTransition(state=state)

    def observe_selection(
        self,
        state: DragState,
        selected: CalendarEvent | DraftEvent | None,
    ) -> DragTransition:
        """Drop the persistent preview once the draft is saved or deselected."""
        if state.phase != "committed":
            return DragTransition(state=state)
        if is_saved_draft(selected, state.draft_id):
            logger.debug("Draft %s saved, removing preview", state.draft_id)
            return DragTransition(state=DragState())
        if selected is None or selected.id != state.draft_id:
            return DragTransition(state=DragState())
        return DragTransition(state=state)

    def _abort(self, stage: str) -> DragTransition:
        logger.debug("Drag-to-create %s on %s aborted: missing pointer data", stage, self.day)
        return DragTransition(state=DragState())


# ---------------------------------------------------------------------------
# Drag-to-move
# ---------------------------------------------------------------------------


def _in_zone_of(instant: datetime, reference: datetime) -> datetime:
    reference_zone = zone_id(reference)
    if reference_zone is None:
        return instant
    return instant.astimezone(resolve_zone(reference_zone))


def move_event(
    event: CalendarEvent | DraftEvent,
    *,
    target_day: date,
    target_hours: float | None = None,
    display_time_zone: str,
) -> CalendarEvent | DraftEvent | None:
    """Move *event* to a drop target, keeping its duration and zone identity.

    ``target_hours`` is the fractional hour under the pointer in a time grid;
    month cells pass ``None`` and the event keeps its time of day. All-day
    events shift by whole days. Returns ``None`` when the start does not
    change or the move cannot be computed.
    """
    try:
        if boundary_kind(event.start) is BoundaryKind.date:
            shift = target_day - event.start
            if not shift:
                return None
            return event.model_copy(
                update={"start": event.start + shift, "end": event.end + shift}
            )

        original_start = to_instant(event.start)
        duration = to_instant(event.end) - original_start
        displayed = to_zoned(event.start, display_time_zone)

        if target_hours is None:
            new_local = localize(
                datetime.combine(target_day, displayed.time()),
                resolve_zone(display_time_zone),
            )
        else:
            # Snapping must not carry the drop into the next day.
            minutes = min(
                snap_minutes(max(target_hours, 0.0) * 60),
                MINUTES_PER_DAY - SNAP_INCREMENT_MINUTES,
            )
            new_local = combine(target_day, minutes, display_time_zone)

        new_start = new_local.astimezone(UTC)
        if new_start == original_start:
            return None
        return event.model_copy(
            update={
                "start": _in_zone_of(new_start, event.start),
                "end": _in_zone_of(new_start + duration, event.end),
            }
        )
    except ValueError as exc:
        logger.warning("Could not move event %s to %s: %s", event.id, target_day, exc)
        return None
