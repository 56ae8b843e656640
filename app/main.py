# app/main.py
"""
Application entry point: wires the record store, rate limiter, email
dispatcher and feature services into app.state during lifespan startup.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import settings
from app.db.record_store import InMemoryRecordStore, RedisRecordStore
from app.db.schema_registry import schema_registry
from app.features.advisor_feedback.api import router as advisor_router
from app.features.advisor_feedback.repository.advisor_repository import AdvisorRepository
from app.features.advisor_feedback.services.advisor_service import AdvisorService
from app.features.advisor_feedback.services.email_service import build_email_dispatcher
from app.features.experiments.api import router as experiment_router
from app.features.experiments.services.experiment_service import ExperimentService
from app.infrastructure.observability.logging import get_logger, setup_logging
from app.middleware import RateLimitHeadersMiddleware, RequestContextMiddleware, rate_limiter
from app.routes import health
from app.services.redis_client import fast_redis

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    if settings.use_redis():
        logger.info("Initializing Redis connection")
        await fast_redis.initialize()
        store = RedisRecordStore(
            fast_redis.client,
            namespace=settings.RECORD_STORE_NAMESPACE,
            lock_timeout=settings.LOCK_TIMEOUT_SECONDS,
        )
        rate_limiter.use_redis(fast_redis.client)
    else:
        logger.warning("REDIS_URL not set, using in-memory record store")
        store = InMemoryRecordStore(lock_timeout=settings.LOCK_TIMEOUT_SECONDS)

    email_dispatcher = build_email_dispatcher()

    app.state.record_store = store
    app.state.email_dispatcher = email_dispatcher
    app.state.advisor_service = AdvisorService(
        AdvisorRepository(store, schema_registry),
        email_dispatcher,
        rate_limiter=rate_limiter,
    )
    app.state.experiment_service = ExperimentService(store, schema_registry)

    logger.info(
        "All services initialized successfully",
        record_store=type(store).__name__,
        rate_limiter_backend=rate_limiter.backend,
        email_dispatcher=type(email_dispatcher).__name__,
    )

    yield

    logger.info("Application shutting down")

    shutdown_errors = []

    try:
        await email_dispatcher.close()
    except Exception as e:
        logger.error("Error closing email dispatcher", error=str(e))
        shutdown_errors.append(f"Email: {e}")

    if fast_redis.is_initialized:
        logger.info("Closing Redis connection")
        await fast_redis.close()

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Career Insight Platform",
        description="Advisor feedback and career experiment tracking",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(health.router)
    app.include_router(advisor_router.router)
    app.include_router(experiment_router.router)

    # Added last so it runs first and request.state is populated for everything below
    app.add_middleware(RateLimitHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
