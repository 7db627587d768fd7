"""Shared fixtures and event factories for the calkit test suite."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import Any

import pytest

from calkit.core.logging import _NOISE_LOGGERS
from calkit.models import CalendarEvent

EventFactory = Callable[..., CalendarEvent]


def _make_event(
    event_id: str,
    start: date | datetime,
    end: date | datetime | None = None,
    *,
    days: int = 1,
    title: str | None = None,
    provider_id: str = "google",
    account_id: str = "acct",
    calendar_id: str = "primary",
    **fields: Any,
) -> CalendarEvent:
    """Build a CalendarEvent; all-day is inferred from the boundary type.

    When *end* is omitted, a plain-date *start* spans *days* whole days.
    """
    if end is None:
        end = start + timedelta(days=days)
    return CalendarEvent(
        id=event_id,
        provider_id=provider_id,
        account_id=account_id,
        calendar_id=calendar_id,
        title=title if title is not None else event_id,
        start=start,
        end=end,
        **fields,
    )


@pytest.fixture
def make_event() -> EventFactory:
    return _make_event


@pytest.fixture(autouse=True)
def _reset_root_logging():
    """Undo handler changes made by configure_logging() (CLI and logging tests)."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers[:] = original_handlers
    root.setLevel(original_level)
    for name in _NOISE_LOGGERS:
        logging.getLogger(name).handlers.clear()
