"""FastAPI application factory for the alert service.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan builds the process-wide KioskLink and AlertDispatcher
once and parks them on app.state; routes reach them through dependencies
instead of module globals.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from expoalerts import __version__
from expoalerts.api import api_router
from expoalerts.config import settings
from expoalerts.realtime.dispatch import AlertDispatcher
from expoalerts.realtime.link import KioskLink

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    The kiosk link connects in the background. Startup never waits for
    the relay, and the service runs fine while it is unreachable.
    """
    logger.info(
        "expoalerts.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from expoalerts.db.engine import engine, init_db
    try:
        await init_db()
    except Exception as e:
        logger.warning("expoalerts.database_unavailable", error=str(e))

    link = KioskLink(
        settings.kiosk_link_url,
        reconnect_delay=settings.kiosk_reconnect_delay,
    )
    link.initialize()
    app.state.kiosk_link = link
    app.state.alert_dispatcher = AlertDispatcher(link)
    logger.info("expoalerts.kiosk_link_started", url=settings.kiosk_link_url)

    yield

    logger.info("expoalerts.shutdown")
    await link.close()
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Expo Alerts Service",
        description="Alert creation and kiosk broadcast for the exhibition platform",
        version=__version__,
        lifespan=lifespan,
    )

    # Starlette runs middleware in reverse order of registration.
    from expoalerts.middleware.request_id import RequestIdMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: expoalerts.main:app)
app = create_app()
