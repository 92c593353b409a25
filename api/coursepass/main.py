"""CoursePass API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursepass.access.router import router as access_router
from coursepass.access.service import AccessService
from coursepass.access_requests.router import router as access_requests_router
from coursepass.access_requests.service import AccessRequestService
from coursepass.config import get_settings
from coursepass.core.clock import Clock, utc_now
from coursepass.core.context import get_request_id
from coursepass.core.database import CassandraStorage, MemoryStorage, Storage
from coursepass.core.exceptions import CoursePassError
from coursepass.core.logging import configure_structlog, get_logger
from coursepass.core.middleware import RequestContextMiddleware
from coursepass.core.redis import init_redis, shutdown_redis
from coursepass.courses.router import router as courses_router
from coursepass.courses.service import CourseService
from coursepass.delegation.router import router as delegation_router
from coursepass.delegation.service import DelegationService
from coursepass.health import router as health_router
from coursepass.identity.router import router as identity_router
from coursepass.identity.service import IdentityService
from coursepass.ownership.router import router as ownership_router
from coursepass.ownership.service import OwnershipService


if TYPE_CHECKING:
    from redis.asyncio import Redis


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def init_services(
    app: FastAPI,
    store: Storage,
    redis: "Redis | None" = None,
    clock: Clock = utc_now,
) -> None:
    """Build every service around one storage handle and expose it on app.state."""
    identity = IdentityService(store, clock)
    ownership = OwnershipService(store, clock)
    delegation = DelegationService(store, clock)

    app.state.store = store
    app.state.identity_service = identity
    app.state.course_service = CourseService(store, clock)
    app.state.ownership_service = ownership
    app.state.delegation_service = delegation
    app.state.access_request_service = AccessRequestService(
        store, identity, ownership, delegation, clock
    )
    app.state.access_service = AccessService(
        store,
        identity,
        ownership,
        delegation,
        clock,
        redis=redis,
        cache_ttl=get_settings().access_cache_ttl_seconds,
    )


def _build_storage() -> Storage:
    settings = get_settings()
    if not settings.uses_cassandra:
        return MemoryStorage()

    from coursepass.core.database.cassandra import init_cassandra

    session = init_cassandra()
    return CassandraStorage(session=session, keyspace=settings.cassandra_keyspace)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        storage_backend=settings.storage_backend,
    )

    # Initialize Redis (non-critical - app works without it)
    redis_client = None
    if settings.redis_enabled:
        try:
            redis_client = await init_redis()
            logger.info("redis_initialized")
        except Exception as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running without Redis - access cache disabled",
            )

    store = _build_storage()
    init_services(app, store, redis=redis_client)
    logger.info("services_initialized", storage=type(store).__name__)

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    if settings.uses_cassandra:
        from coursepass.core.database.cassandra import shutdown_cassandra

        shutdown_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces are never rendered in responses; handlers below log them
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course ownership, delegated access and access requests",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "code": getattr(exc, "code", None),
                "status_code": exc.status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with field-level details."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": _get_request_id_safe(request),
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(CoursePassError)
    async def business_exception_handler(
        request: Request, exc: CoursePassError
    ) -> ORJSONResponse:
        """Business errors that no router translated."""
        status_code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if exc.code == "storage_contention"
            else status.HTTP_400_BAD_REQUEST
        )
        logger.warning(
            "business_error",
            code=exc.code,
            error=exc.message,
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status_code,
            content={
                "error": True,
                "message": exc.message,
                "code": exc.code,
                "status_code": status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Full details are logged; the response carries a generic message.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": _get_request_id_safe(request),
            },
        )

    app.include_router(health_router)
    app.include_router(identity_router)
    app.include_router(courses_router)
    app.include_router(ownership_router)
    app.include_router(access_router)
    app.include_router(delegation_router)
    app.include_router(access_requests_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "CoursePass API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
