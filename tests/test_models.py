"""Tests for event model validation and draft helpers."""

from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from calkit.models import (
    DRAFT_ID_PREFIX,
    CalendarEvent,
    DraftEvent,
    EventInput,
    EventUpdateInput,
    create_draft_event,
    is_saved_draft,
)

pytestmark = pytest.mark.unit

NEW_YORK = ZoneInfo("America/New_York")
BERLIN = ZoneInfo("Europe/Berlin")


def _event(**overrides) -> CalendarEvent:
    payload = {
        "id": "evt-1",
        "provider_id": "google",
        "account_id": "acct",
        "calendar_id": "primary",
        "title": "Standup",
        "start": datetime(2024, 5, 1, 9, tzinfo=NEW_YORK),
        "end": datetime(2024, 5, 1, 9, 30, tzinfo=NEW_YORK),
    }
    payload.update(overrides)
    return CalendarEvent(**payload)


class TestCalendarEventValidation:
    def test_timed_event(self):
        event = _event()
        assert event.all_day is False
        assert event.kind == "event"

    def test_all_day_inferred_from_dates(self):
        event = _event(start=date(2024, 5, 1), end=date(2024, 5, 2))
        assert event.all_day is True

    def test_all_day_inferred_from_date_strings(self):
        event = _event(start="2024-05-01", end="2024-05-03")
        assert event.all_day is True
        assert event.start == date(2024, 5, 1)

    def test_mixed_boundary_types_rejected(self):
        with pytest.raises(ValidationError, match="same type"):
            _event(start=date(2024, 5, 1), end=datetime(2024, 5, 2, tzinfo=UTC))

    def test_all_day_flag_requires_dates(self):
        with pytest.raises(ValidationError, match="plain date"):
            _event(all_day=True)

    def test_timed_flag_rejects_dates(self):
        with pytest.raises(ValidationError, match="date-time"):
            _event(start=date(2024, 5, 1), end=date(2024, 5, 2), all_day=False)

    def test_all_day_end_is_exclusive(self):
        with pytest.raises(ValidationError, match="end is exclusive"):
            _event(start=date(2024, 5, 1), end=date(2024, 5, 1))

    def test_timed_end_must_follow_start(self):
        with pytest.raises(ValidationError, match="end must be after start"):
            _event(end=datetime(2024, 5, 1, 8, tzinfo=NEW_YORK))

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValidationError):
            _event(start=datetime(2024, 5, 1, 9), end=datetime(2024, 5, 1, 10))

    def test_different_zones_are_kept(self):
        event = _event(
            start=datetime(2024, 5, 1, 9, tzinfo=NEW_YORK),
            end=datetime(2024, 5, 1, 17, tzinfo=BERLIN),
        )
        assert event.start.tzinfo == NEW_YORK
        assert event.end.tzinfo == BERLIN

    def test_optional_text_normalized(self):
        event = _event(description="  ", location="  Room 4 ")
        assert event.description is None
        assert event.location == "Room 4"

    def test_json_uses_boundary_text_form(self):
        dumped = _event().model_dump(mode="json")
        assert dumped["start"] == "2024-05-01T09:00:00-04:00[America/New_York]"

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            _event(provider_id="yahoo")


class TestEventInput:
    def test_infers_all_day(self):
        event = EventInput(
            start="2024-05-01", end="2024-05-02", account_id="acct", calendar_id="primary"
        )
        assert event.all_day is True

    def test_rejects_extra_fields(self):
        with pytest.raises(ValidationError):
            EventInput(
                start="2024-05-01",
                end="2024-05-02",
                account_id="acct",
                calendar_id="primary",
                colour="blue",
            )

    def test_update_requires_id(self):
        with pytest.raises(ValidationError):
            EventUpdateInput(
                start="2024-05-01", end="2024-05-02", account_id="acct", calendar_id="primary"
            )


class TestDrafts:
    def test_create_draft_generates_temporary_id(self):
        draft = create_draft_event(
            datetime(2024, 5, 1, 9, tzinfo=NEW_YORK),
            datetime(2024, 5, 1, 10, tzinfo=NEW_YORK),
        )
        assert draft.id.startswith(DRAFT_ID_PREFIX)
        assert draft.kind == "draft"
        assert draft.all_day is False

    def test_drafts_get_distinct_ids(self):
        first = create_draft_event(date(2024, 5, 1), date(2024, 5, 2))
        second = create_draft_event(date(2024, 5, 1), date(2024, 5, 2))
        assert first.id != second.id
        assert first.all_day is True

    def test_saved_draft_detected_by_id_and_kind(self):
        draft = create_draft_event(date(2024, 5, 1), date(2024, 5, 2))
        saved = _event(id=draft.id, start=date(2024, 5, 1), end=date(2024, 5, 2))
        assert is_saved_draft(saved, draft.id) is True

    def test_unsaved_draft_not_detected(self):
        draft = create_draft_event(date(2024, 5, 1), date(2024, 5, 2))
        assert is_saved_draft(draft, draft.id) is False
        assert is_saved_draft(None, draft.id) is False
        assert is_saved_draft(_event(), draft.id) is False

    def test_draft_validates_boundaries(self):
        with pytest.raises(ValidationError):
            DraftEvent(start=date(2024, 5, 2), end=date(2024, 5, 1))
