"""
FastAPI application entry point for the integration sync retry service.
"""

import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from sync_retry.api.error_handlers import EXCEPTION_HANDLERS
from sync_retry.api.health import router as health_router
from sync_retry.api.middleware import RequestTracingMiddleware
from sync_retry.api.routes import router as retry_queue_router
from sync_retry.config import settings
from sync_retry.logging_config import configure_logging
from sync_retry.persistence.redis_client import RedisClient

# Configure structured logging before any other imports
configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
logger = structlog.get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Retry queue, circuit breakers and dead letter administration for external system syncs",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Request tracing middleware (must be first for request_id in all logs)
app.add_middleware(RequestTracingMiddleware)

# Register exception handlers
for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)

# Include routers
app.include_router(health_router, tags=["health"])
app.include_router(retry_queue_router, prefix="/retry-queue", tags=["retry-queue"])


@app.on_event("startup")
async def startup():
    logger.info(
        "Application startup",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        store_backend=settings.STORE_BACKEND,
        batch_size=settings.RETRY_BATCH_SIZE,
        failure_threshold=settings.CIRCUIT_FAILURE_THRESHOLD,
    )


@app.on_event("shutdown")
async def shutdown():
    logger.info("Application shutdown")
    RedisClient.close_sync_pool()


# Prometheus metrics instrumentation
if settings.PROMETHEUS_ENABLED:
    Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """Root endpoint with API documentation links."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
        "retry_queue": "/retry-queue",
        "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sync_retry.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # Only for development
    )
