"""Shared fixtures for calkit API tests."""

from __future__ import annotations

import httpx
import pytest
from fastapi import FastAPI

from calkit.api.app import create_app
from calkit.config import CalendarConfig, LayoutConfig


@pytest.fixture
def calendar_config() -> CalendarConfig:
    return CalendarConfig(
        default_time_zone="America/New_York",
        layout=LayoutConfig(month_visible_lanes=2, week_all_day_visible_lanes=2),
    )


@pytest.fixture
def app(calendar_config) -> FastAPI:
    return create_app(calendar_config)


@pytest.fixture
async def client(app):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client
