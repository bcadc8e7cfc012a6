"""
chatmeter application.

FastAPI application exposing metered, multi-provider chat with SSE
streaming, structured logging, and stable error codes.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from chatmeter import __version__
from chatmeter.api import chat_router, health_router, models_router, usage_router
from chatmeter.config import get_settings
from chatmeter.core import get_logger, setup_logging
from chatmeter.core.middleware import RequestContextMiddleware, setup_exception_handlers
from chatmeter.db import dispose_engine, get_session_factory, verify_database_connection
from chatmeter.db.seed import seed_defaults
from chatmeter.providers import ProviderRegistry
from chatmeter.services.rate_limiter import RateLimiter

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Startup
    setup_logging(
        level=settings.log_level,
        json_output=not settings.debug,
        log_file=settings.log_file or None,
    )
    logger.info(
        "Starting chatmeter",
        data={
            "host": settings.host,
            "port": settings.port,
            "environment": settings.environment,
            "cors_origins": settings.cors_origins_list,
        },
    )

    session_factory = get_session_factory()

    # Verify database connectivity (does NOT run migrations)
    if verify_database_connection():
        logger.info("Database connection verified")
        if settings.seed_defaults:
            try:
                with session_factory() as db:
                    seed_defaults(db)
            except SQLAlchemyError as exc:
                logger.warning(
                    "Seeding skipped - run 'alembic upgrade head' to initialize",
                    data={"error": str(exc)},
                )
    else:
        logger.warning(
            "Database connection failed - run 'alembic upgrade head' to initialize"
        )

    _app.state.start_time = datetime.now(UTC)
    _app.state.session_factory = session_factory
    _app.state.rate_limiter = RateLimiter()

    # Initialize provider registry unless provided (useful in tests)
    registry_created = False
    if not hasattr(_app.state, "provider_registry"):
        _app.state.provider_registry = ProviderRegistry(settings)
        registry_created = True

    yield

    # Shutdown
    logger.info("Shutting down chatmeter")
    dispose_engine()
    if registry_created:
        await _app.state.provider_registry.aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="chatmeter",
        description="Metered multi-provider chat with streaming replies",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Setup exception handlers (must be before middleware)
    setup_exception_handlers(app)

    # Middleware order matters - last added = first executed
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.include_router(health_router)
    app.include_router(chat_router)
    app.include_router(models_router)
    app.include_router(usage_router)

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "chatmeter.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


# Create application instance
app = create_app()
