"""
Tablebook Reservations API - Main Application Entry Point

A multi-tenant restaurant booking engine:
- Idempotent confirms keyed by x-idempotency-key
- No double booking: writers take a per-table row lock, plus an exclusion
  constraint on PostgreSQL
- Short-lived holds in the database or Redis
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tablebook.core.config import get_settings
from tablebook.core.errors import install_exception_handlers
from tablebook.core.logging import setup_logging, get_logger
from tablebook.core.metrics import metrics_endpoint
from tablebook.api.router import api_router
from tablebook.api.middleware import RequestLoggingMiddleware
from tablebook.infrastructure import get_redis, close_redis
from tablebook.services.cache_service import get_cache_stats

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        hold_store=settings.HOLD_STORE,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache; holds in database; events dropped")

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Multi-tenant restaurant reservation API with idempotent, conflict-free confirms",
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

app.add_middleware(RequestLoggingMiddleware)

install_exception_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "holdStore": settings.HOLD_STORE,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()
