"""Main FastAPI application."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pipeline_logs.api import api_router
from pipeline_logs.core.config import get_settings
from pipeline_logs.core.errors import (
    MutationFailed,
    MutationRejected,
    QueryFailed,
    ViewNotFound,
)
from pipeline_logs.core.logging import bind_request_context, get_logger, setup_logging
from pipeline_logs.db.session import close_db, create_tables, init_db
from pipeline_logs.monitoring.metrics import get_metrics_collector, metrics_endpoint
from pipeline_logs.services.log_store import SqlLogStore
from pipeline_logs.services.order_authority import DatabaseOrderAuthority, HttpOrderAuthority
from pipeline_logs.services.order_status_service import OrderStatusService
from pipeline_logs.services.views import ViewRegistry

# Setup logging
setup_logging()
logger = get_logger(__name__)

# Get settings
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    current = get_settings()
    logger.info("application_starting", app_name=current.app_name, version=current.app_version)

    session_factory = init_db(current.database_url)
    if current.auto_create_tables:
        await create_tables()

    if current.order_authority_url:
        authority = HttpOrderAuthority(
            current.order_authority_url,
            token=current.order_authority_token,
            timeout=current.order_authority_timeout_seconds,
            max_attempts=current.mutation_retry_attempts,
        )
        logger.info("order_authority_configured", kind="http", url=current.order_authority_url)
    else:
        authority = DatabaseOrderAuthority(session_factory)
        logger.info("order_authority_configured", kind="database")

    log_store = SqlLogStore(session_factory)
    app.state.log_store = log_store
    app.state.view_registry = ViewRegistry(log_store, max_views=current.max_views)
    app.state.order_status_service = OrderStatusService(authority)

    yield

    logger.info("application_shutting_down")
    await close_db()
    logger.info("application_shutdown_complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Browse, filter and summarize order-ingestion pipeline logs",
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    lifespan=lifespan,
)

# CORS middleware
if settings.cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=settings.cors_methods,
        allow_headers=settings.cors_headers,
    )


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests and collect metrics."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    bind_request_context(request_id=request_id)
    start_time = time.time()

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    duration = time.time() - start_time

    logger.info(
        "http_request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration=f"{duration:.3f}s",
    )

    if settings.enable_metrics:
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        metrics = get_metrics_collector()
        metrics.record_api_request(request.method, endpoint, response.status_code)

    return response


def _error_response(status_code: int, message: str, errors: list) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status_code": status_code, "message": message, "errors": errors},
    )


@app.exception_handler(QueryFailed)
async def query_failed_handler(request: Request, exc: QueryFailed):
    logger.warning("query_failed", path=request.url.path, error=exc.cause)
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE, "Log store query failed", [exc.cause]
    )


@app.exception_handler(MutationRejected)
async def mutation_rejected_handler(request: Request, exc: MutationRejected):
    code = status.HTTP_404_NOT_FOUND if exc.not_found else status.HTTP_400_BAD_REQUEST
    return _error_response(code, "Order status change rejected", [exc.reason])


@app.exception_handler(MutationFailed)
async def mutation_failed_handler(request: Request, exc: MutationFailed):
    return _error_response(
        status.HTTP_502_BAD_GATEWAY, "Failed to update order status", [exc.cause]
    )


@app.exception_handler(ViewNotFound)
async def view_not_found_handler(request: Request, exc: ViewNotFound):
    return _error_response(status.HTTP_404_NOT_FOUND, "View not found", [exc.message])


# Exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        [str(exc)] if settings.debug else ["An unexpected error occurred"],
    )


# Include routers
app.include_router(api_router)

# Metrics endpoint
if settings.enable_metrics:
    app.get(settings.metrics_path)(metrics_endpoint)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "environment": settings.environment,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pipeline_logs.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        log_level=settings.log_level.lower(),
        reload=settings.is_development,
    )
