"""
Product API - Main FastAPI Application

Cache-aside product catalog over a primary/replica PostgreSQL pair and a
Redis side cache:
- reads of a single product go cache -> replica -> cache
- writes go to the primary and invalidate the cache key
- cache liveness is tracked in the background; the API starts even when
  Redis is not reachable yet
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .api.endpoints.health import router as health_router
from .api.endpoints.products import router as products_router
from .core.config import get_settings
from .core.correlation import CorrelationIdMiddleware, get_correlation_id
from .core.database import DatabaseManager
from .core.exceptions import ProductServiceError
from .core.logging import configure_logging
from .infrastructure.redis.connection_factory import (
    close_redis_client,
    create_redis_client,
)
from .infrastructure.redis.liveness import CacheConnectionMonitor, CacheLiveness
from .repositories.product import ProductReadRepository, ProductWriteRepository
from .services.cache.cache_aside import CacheAsideEngine
from .services.products import ProductService

logger = structlog.get_logger()


# Application lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build executors, cache client and service; tear them down on exit."""
    settings = get_settings()
    configure_logging(
        settings.SERVICE_NAME,
        settings.LOG_LEVEL,
        json_logs=not settings.is_development,
    )

    database = DatabaseManager(settings)
    await database.initialize()

    redis_client = None
    monitor = None
    try:
        redis_client = create_redis_client(settings)
        liveness = CacheLiveness()
        monitor = CacheConnectionMonitor(
            redis_client,
            liveness,
            interval_seconds=settings.REDIS_HEALTH_CHECK_INTERVAL,
            probe_timeout_seconds=settings.REDIS_OPERATION_TIMEOUT,
        )
        # Starts DISCONNECTED; the first connection happens in the background.
        monitor.start()

        cache = CacheAsideEngine(redis_client, liveness)
        app.state.cache_liveness = liveness
        app.state.product_service = ProductService(
            read_repository=ProductReadRepository(database.read_executor),
            write_repository=ProductWriteRepository(database.write_executor),
            cache=cache,
            ttl_seconds=settings.CACHE_TTL_SECONDS,
            failure_policy=settings.CACHE_FAILURE_POLICY,
            entity_type=settings.CACHE_KEY_PREFIX,
        )

        logger.info(
            "Product API started",
            port=settings.API_PORT,
            reads=settings.redacted_url(settings.REPLICA_DATABASE_URL),
            writes=settings.redacted_url(settings.PRIMARY_DATABASE_URL),
            cache=settings.redacted_url(settings.REDIS_URL),
            ttl_seconds=settings.CACHE_TTL_SECONDS,
            cache_failure_policy=settings.CACHE_FAILURE_POLICY.value,
        )

        yield
    finally:
        logger.info("Shutting down Product API")
        if monitor is not None:
            await monitor.stop()
        if redis_client is not None:
            await close_redis_client(redis_client)
        await database.close()
        logger.info("Application shutdown completed")


def _error_response(request: Request, status_code: int, body: dict) -> JSONResponse:
    correlation_id = get_correlation_id(request)
    if correlation_id:
        body["correlation_id"] = correlation_id
    return JSONResponse(status_code=status_code, content=body)


async def product_service_error_handler(request: Request, exc: ProductServiceError):
    """Render typed failures: 400, 404, 503 or 500 by kind."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed",
        path=request.url.path,
        method=request.method,
        error_code=exc.error_code,
        error=exc.message,
        status_code=exc.status_code,
    )
    return _error_response(request, exc.status_code, exc.to_dict())


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
):
    """Malformed bodies and parameters are 400, like every other bad input."""
    return _error_response(
        request,
        400,
        {
            "error": "INVALID_ARGUMENT",
            "message": "Invalid request",
            "details": {
                "errors": [
                    {
                        "field": ".".join(str(p) for p in err.get("loc", ())),
                        "message": err.get("msg"),
                    }
                    for err in exc.errors()
                ]
            },
        },
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for anything not classified above."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=exc,
    )
    return _error_response(
        request,
        500,
        {
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title="Product API",
        description="Cache-aside product catalog over a primary/replica store",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add correlation ID middleware for request tracking
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(ProductServiceError, product_service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Include API routers
    app.include_router(health_router, tags=["health"])
    app.include_router(products_router, tags=["products"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
