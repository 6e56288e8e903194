"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response, status
from sqlalchemy import text

from classbook.core.config import get_settings
from classbook.core.database import SessionLocal, close_engine
from classbook.core.metrics import build_metrics_response, instrument_http_request
from classbook.modules.lessons.router import router as lessons_router
from classbook.shared.exceptions import register_exception_handlers
from classbook.shared.utils import utc_now

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Application startup and shutdown hooks."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info("Starting %s", settings.app_name)
    if not settings.classroom_lock_enabled:
        logger.warning("Classroom write locks are disabled; concurrent bookings may overlap")

    yield

    logger.info("Shutting down %s", settings.app_name)
    await close_engine()


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)
app.middleware("http")(instrument_http_request)

register_exception_handlers(app)

app.include_router(lessons_router, prefix=settings.api_prefix)


@app.get("/health")
async def healthcheck() -> dict[str, str]:
    """Liveness probe endpoint."""
    return {"status": "ok", "timestamp": utc_now().isoformat()}


async def _is_database_ready() -> bool:
    """Return True if DB accepts basic queries."""
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("Database readiness check failed")
        return False


@app.get("/ready")
async def readiness_check() -> dict[str, str]:
    """Readiness probe endpoint with DB dependency check."""
    if not await _is_database_ready():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database is not ready",
        )
    return {
        "status": "ready",
        "database": "ok",
        "timestamp": utc_now().isoformat(),
    }


@app.get("/metrics", include_in_schema=False)
async def metrics_endpoint(_: Request) -> Response:
    """Prometheus metrics endpoint."""
    return build_metrics_response()
