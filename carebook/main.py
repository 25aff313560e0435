# carebook/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .core.config import settings
from .database import get_engine, init_db
from .routes import availability as availability_routes, bookings as booking_routes
from .schemas.health import HealthResponse

# Configure logging
logging.basicConfig(
    level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

API_TITLE = "CareBook Scheduling API"
API_DESCRIPTION = "Caregiver availability slots and the parent booking lifecycle."


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info("CareBook API starting up (environment: %s)", settings.environment)
    init_db()
    yield
    logger.info("CareBook API shutting down")
    get_engine().dispose()


def create_app(*, initialize_database: bool = True) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        initialize_database: create tables on startup; tests that prepare their
            own schema pass False
    """
    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=app_lifespan if initialize_database else None,
    )

    api_v1 = APIRouter(prefix=settings.api_prefix)
    api_v1.include_router(availability_routes.router, prefix="/availability")
    api_v1.include_router(booking_routes.router, prefix="/bookings")
    app.include_router(api_v1)

    @app.get("/health", response_model=HealthResponse)
    def health_check(response: Response) -> HealthResponse:
        database = "ok"
        try:
            with get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error("Health check database query failed: %s", e)
            database = "unavailable"
            response.status_code = 503
        return HealthResponse(
            status="healthy" if database == "ok" else "degraded",
            service="carebook",
            version=__version__,
            environment=settings.environment,
            database=database,
        )

    return app


app = create_app()
