"""FastAPI dependencies for the calkit API.

Provides the CalendarConfig singleton to route handlers.
"""

from __future__ import annotations

import logging

from calkit.config import CalendarConfig

logger = logging.getLogger(__name__)

_calendar_config: CalendarConfig | None = None


def init_calendar_config(config: CalendarConfig | None = None) -> CalendarConfig:
    """Initialize the CalendarConfig singleton.

    Called once from ``create_app()``; defaults apply when *config* is None.
    """
    global _calendar_config  # noqa: PLW0603
    _calendar_config = config if config is not None else CalendarConfig()
    logger.debug(
        "Calendar config initialized (time_zone=%s, week_starts_on=%d)",
        _calendar_config.default_time_zone,
        _calendar_config.week_starts_on,
    )
    return _calendar_config


def get_calendar_config() -> CalendarConfig:
    """FastAPI dependency: provides the CalendarConfig singleton.

    Usage::

        @router.post("/layout/week")
        async def week(body: LayoutRequest, config = Depends(get_calendar_config)):
            ...
    """
    if _calendar_config is None:
        raise RuntimeError("CalendarConfig not initialized; call init_calendar_config() first")
    return _calendar_config
