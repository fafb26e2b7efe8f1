"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from complio.config import settings
from complio.db.engine import create_db_engine, create_session_factory
from complio.logging_config import configure_logging

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)
    session_factory = create_session_factory(engine)

    # Auto-create tables for SQLite (local dev, no Alembic migrations)
    if "sqlite" in db_url:
        from complio.db.base import Base
        import complio.db.models  # noqa: F401  register all ORM models

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

        from complio.services.providers import seed_default_providers

        async with session_factory() as seed_session:
            await seed_default_providers(seed_session)
            await seed_session.commit()

    app.state.db_engine = engine
    app.state.db_session_factory = session_factory

    # Redis is optional in local mode
    app.state.redis = None
    if not settings.local_mode:
        try:
            import redis.asyncio as aioredis
            app.state.redis = aioredis.from_url(settings.redis_url, decode_responses=True)
        except ImportError:
            logger.warning("Redis client not installed, scheduler locks disabled")

    from complio.workers.orchestrator import SyncOrchestrator

    orchestrator = SyncOrchestrator(session_factory, settings=settings, redis=app.state.redis)
    app.state.orchestrator = orchestrator
    if settings.orchestrator_enabled:
        orchestrator.start()

    logger.info("Complio API started (db=%s)", "sqlite" if "sqlite" in db_url else "postgresql")
    yield

    # Shutdown
    await orchestrator.stop()
    if app.state.redis:
        await app.state.redis.close()
    await engine.dispose()
    logger.info("Complio API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Complio API",
        version="1.0.0",
        description="Compliance automation backend: integration syncs, automated evidence and risk tracking.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting (added before auth so it runs after the user is known)
    from complio.api.middleware.rate_limit import setup_rate_limiter
    setup_rate_limiter(app)

    # Add middleware (order matters: last added = first executed)
    from complio.api.middleware.trace_id import TraceIdMiddleware
    from complio.api.middleware.auth import AuthMiddleware
    app.add_middleware(AuthMiddleware)
    app.add_middleware(TraceIdMiddleware)

    from complio.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    # Prometheus metrics (internal endpoint)
    try:
        from prometheus_fastapi_instrumentator import Instrumentator
        Instrumentator(
            should_group_status_codes=True,
            should_respect_env_var=False,
            excluded_handlers=["/api/v1/health.*", "/metrics"],
        ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    except ImportError:
        logger.debug("prometheus-fastapi-instrumentator not installed, /metrics disabled")

    from complio.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
