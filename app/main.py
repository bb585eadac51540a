"""
FastAPI application entry point.

Configures middleware, lifespan events, error handlers and mounts all routers.
Run locally: uvicorn app.main:app --reload
Production:  gunicorn app.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.routes import artifacts, broadcasts, dashboard, health, news
from app.core.config import get_settings
from app.core.errors import (
    NewsBroadcastError,
    http_error_handler,
    nb_error_handler,
    unhandled_error_handler,
    validation_error_handler,
)
from app.core.logging import get_logger, setup_logging
from app.core.security import limiter
from app.models.database import init_models

settings = get_settings()
logger = get_logger(__name__)

SERVICE_NAME = "ElectionCaffe News & Broadcast"
VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown events."""
    setup_logging()
    logger.info(
        "app_starting",
        environment=settings.app_env,
        database=settings.database_url[:30] + "...",
    )

    if settings.auto_create_tables:
        await init_models()
        logger.info("database_tables_ensured")

    yield

    logger.info("app_shutting_down")


app = FastAPI(
    title=SERVICE_NAME,
    description="News-to-action pipeline: parse, analyse, generate, approve, broadcast",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.app_env != "production" else None,
    redoc_url="/redoc" if settings.app_env != "production" else None,
)

# ── Middleware ──────────────────────────────────────────────
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Rate limiting ──────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ── Error envelope ─────────────────────────────────────────
app.add_exception_handler(NewsBroadcastError, nb_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# ── Routes ─────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(news.router, prefix="/api/v1")
app.include_router(artifacts.router, prefix="/api/v1")
app.include_router(broadcasts.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {
        "service": SERVICE_NAME,
        "version": VERSION,
        "docs": "/docs",
        "health": "/healthz/",
    }
