"""
Main FastAPI application.

Wires together all layers:
- Domain: Catalog entities and exceptions
- Infrastructure: Upstream API client with retries
- Cache: TTL cache, optional Redis snapshot backing, background janitor
- Services: Catalog orchestration
- Routers: HTTP endpoints
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from catalog_service import __version__, metrics
from catalog_service.cache.backends import RedisCacheBackend
from catalog_service.cache.janitor import CacheJanitor
from catalog_service.cache.ttl_cache import TTLCache
from catalog_service.config import Settings, settings
from catalog_service.dependencies import set_catalog_service
from catalog_service.domain.exceptions import (
    CatalogServiceException,
    ClientError,
    LocationNotFoundException,
    StoreOfflineError,
    UpstreamError,
)
from catalog_service.infrastructure.catalog_api_client import CatalogApiClient
from catalog_service.infrastructure.retrying_client import RetryingClient
from catalog_service.logging_config import clear_request_id, set_request_id, setup_logging
from catalog_service.routers import catalog_router, discount_router, health_router
from catalog_service.services.catalog_service import CatalogService, ResourceTtls

# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

janitor: Optional[CacheJanitor] = None
catalog_service: Optional[CatalogService] = None


def create_catalog_service(config: Settings) -> CatalogService:
    """
    Create and configure the catalog service with all dependencies.

    Args:
        config: Application settings

    Returns:
        Configured CatalogService instance
    """
    backend = None
    if config.REDIS_URL:
        backend = RedisCacheBackend.from_url(config.REDIS_URL)
        if not backend.ping():
            logger.warning("Redis not available, cache stays in memory only")
            backend = None

    cache: TTLCache = TTLCache(
        name="catalog",
        default_ttl=config.CACHE_DEFAULT_TTL_SECONDS,
        max_size=config.CACHE_MAX_SIZE,
        backend=backend,
        namespace=config.CACHE_NAMESPACE,
    )

    retrying_client = RetryingClient(
        max_attempts=config.MAX_RETRY_ATTEMPTS,
        base_delay=config.RETRY_BASE_DELAY_SECONDS,
        max_jitter=config.RETRY_MAX_JITTER_SECONDS,
    )
    api_client = CatalogApiClient(
        base_url=config.CATALOG_API_URL,
        timeout_seconds=config.REQUEST_TIMEOUT,
        retrying_client=retrying_client,
    )

    return CatalogService(
        api_client=api_client,
        cache=cache,
        ttls=ResourceTtls(
            locations=config.LOCATIONS_TTL_SECONDS,
            products=config.PRODUCTS_TTL_SECONDS,
            categories=config.CATEGORIES_TTL_SECONDS,
            discounts=config.DISCOUNTS_TTL_SECONDS,
            modifiers=config.MODIFIERS_TTL_SECONDS,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global janitor, catalog_service

    setup_logging(settings.LOG_LEVEL, settings.SERVICE_NAME, use_json=settings.LOG_JSON)
    logger.info("Starting Catalog Service", upstream=settings.CATALOG_API_URL)

    try:
        catalog_service = create_catalog_service(settings)
        set_catalog_service(catalog_service)
        logger.info("Catalog service initialized")
    except Exception as e:
        logger.error("Failed to initialize catalog service", error=str(e))
        raise

    janitor = CacheJanitor([catalog_service.cache], settings.CACHE_CLEANUP_INTERVAL_SECONDS)
    janitor.start()

    yield

    logger.info("Shutting down Catalog Service...")
    await janitor.stop()
    await catalog_service.close()
    set_catalog_service(None)
    logger.info("Catalog Service shut down complete")


app = FastAPI(
    title="Catalog Service",
    description="Normalised, cached access to the upstream commerce catalog",
    version=__version__,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID for distributed tracing."""
    request_id = set_request_id(request.headers.get("X-Request-ID"))

    structlog.contextvars.bind_contextvars(request_id=request_id)
    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()
        clear_request_id()

    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(health_router.router)
app.include_router(catalog_router.router)
app.include_router(discount_router.router)

app.add_api_route("/metrics", metrics.metrics_endpoint, methods=["GET"], include_in_schema=False)


def _error_body(exc: CatalogServiceException, error: str) -> dict:
    return {"success": False, "error": error, "message": exc.message, "details": exc.details}


@app.exception_handler(StoreOfflineError)
async def store_offline_handler(request: Request, exc: StoreOfflineError):
    return JSONResponse(status_code=503, content=_error_body(exc, "store_offline"))


@app.exception_handler(LocationNotFoundException)
async def location_not_found_handler(request: Request, exc: LocationNotFoundException):
    return JSONResponse(status_code=404, content=_error_body(exc, "location_not_found"))


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    """Client errors keep their upstream status; everything else is a bad gateway."""
    logger.warning("Upstream error", path=request.url.path, operation=exc.operation, reason=exc.reason)
    if isinstance(exc, ClientError) and exc.status_code:
        status_code = exc.status_code
    else:
        status_code = 502
    details = {key: value for key, value in exc.details.items() if key != "body"}
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": "upstream_error",
            "message": exc.message,
            "details": details,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "request_id": request.headers.get("X-Request-ID"),
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("catalog_service.app:app", host="0.0.0.0", port=8000, log_level="info")
