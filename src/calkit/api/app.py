"""calkit API: FastAPI application factory.

The app factory creates a FastAPI instance with:
- CORS middleware (configurable origins)
- Error envelope handlers and request-id logging context
- Health endpoint at GET /api/health
- Event, recurrence, layout and drag routers
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from calkit.api.deps import init_calendar_config
from calkit.api.middleware import register_error_handlers
from calkit.api.routers.drag import router as drag_router
from calkit.api.routers.events import router as events_router
from calkit.api.routers.layout import router as layout_router
from calkit.api.routers.recurrence import router as recurrence_router
from calkit.config import CalendarConfig
from calkit.providers import provider_ids

logger = logging.getLogger(__name__)


def create_app(
    config: CalendarConfig | None = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    config:
        Calendar defaults (time zone, week start, lane budgets). Defaults
        to ``CalendarConfig()``.
    cors_origins:
        Allowed CORS origins. Falls back to ``config.api.cors_origins``.
    """
    config = init_calendar_config(config)
    if cors_origins is None:
        cors_origins = config.api.cors_origins

    app = FastAPI(
        title="calkit API",
        version="0.1.0",
    )
    app.router.redirect_slashes = False

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_error_handlers(app)

    app.include_router(events_router)
    app.include_router(recurrence_router)
    app.include_router(layout_router)
    app.include_router(drag_router)

    @app.get("/api/health")
    async def health():
        return {
            "status": "ok",
            "providers": provider_ids(),
            "default_time_zone": config.default_time_zone,
        }

    logger.info("calkit API created (time_zone=%s)", config.default_time_zone)
    return app
