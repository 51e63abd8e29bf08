"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from ordefy import __version__
from ordefy.config import settings
from ordefy.db.engine import create_db_engine, create_session_factory
from ordefy.logging_config import configure_logging

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # Auto-create tables for SQLite (local dev, no Alembic migrations)
    if "sqlite" in db_url:
        from ordefy.db.base import Base
        import ordefy.db.models  # noqa: F401 register all ORM models

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)

    from ordefy.workers.scheduler import start_background_tasks, stop_background_tasks

    tasks = start_background_tasks(app) if settings.worker_enabled else []
    app.state.background_tasks = tasks

    logger.info(
        "Ordefy webhook API started (db=%s, worker=%s)",
        "sqlite" if "sqlite" in db_url else "postgresql",
        "on" if tasks else "off",
    )
    yield

    # Shutdown
    await stop_background_tasks(app, tasks)
    await engine.dispose()
    logger.info("Ordefy webhook API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Ordefy Webhook API",
        version=__version__,
        description="Shopify webhook ingestion with a durable retrying processing queue.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from ordefy.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    from ordefy.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from ordefy.api.middleware.rate_limit import setup_rate_limiter
    setup_rate_limiter(app)

    # Prometheus metrics (internal endpoint)
    Instrumentator(
        should_group_status_codes=True,
        should_respect_env_var=False,
        excluded_handlers=["/api/health.*", "/metrics"],
    ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    from ordefy.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
