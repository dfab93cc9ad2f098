"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from meetauction import __version__
from meetauction.api.router import api_router
from meetauction.config import get_settings
from meetauction.container import build_services
from meetauction.infrastructure.database.connection import dispose_engine, get_session_factory
from meetauction.infrastructure.queue.client import close_queue_pool
from meetauction.observability.metrics import setup_metrics
from meetauction.shared.exceptions import (
    AuthenticationError,
    ConflictError,
    ExternalServiceError,
    GateError,
    GateErrorReason,
    MeetAuctionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from meetauction.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)

GATE_ERROR_STATUS: dict[GateErrorReason, int] = {
    GateErrorReason.NOT_FOUND: 404,
    GateErrorReason.EXPIRED: 410,
    GateErrorReason.CONFLICT: 409,
    GateErrorReason.INVALID_TRANSACTION: 400,
    GateErrorReason.WALLET_MISMATCH: 403,
    GateErrorReason.PROOF_MISMATCH: 403,
    GateErrorReason.UPSTREAM_UNAVAILABLE: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown events."""
    # Startup
    setup_logging()
    logger.info("meetauction_starting", version=__version__)

    # Shared resources (tests may pre-populate app.state)
    settings = get_settings()
    if getattr(app.state, "auth_provider", None) is None:
        from meetauction.api.middleware.auth import build_auth_provider

        app.state.auth_provider = build_auth_provider(settings)

    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(settings, get_session_factory(settings))

    yield

    # Shutdown
    logger.info("meetauction_stopping")

    auth_provider = getattr(app.state, "auth_provider", None)
    if auth_provider is not None:
        await auth_provider.close()

    redis_client = getattr(app.state, "redis_client", None)
    if redis_client is not None:
        close = getattr(redis_client, "close", None)
        if close is not None:
            await close()

    await close_queue_pool()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="MeetAuction API",
        description="Auction completion and NFT-gated meeting access",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # CORS middleware
    # In production, be more restrictive; in development, allow all for convenience
    if settings.is_production:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Exception handlers
    register_exception_handlers(app)

    # Include routers
    app.include_router(api_router, prefix="/api/v1")

    # Observability
    setup_metrics(app)

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(GateError)
    async def gate_error_handler(request: Request, exc: GateError) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=GATE_ERROR_STATUS[exc.reason],
            content={
                "error": exc.reason.value,
                "message": exc.message,
                "details": {**exc.details, "retryable": exc.retryable},
            },
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=422,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.details,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=422,
            content={
                "error": "validation_error",
                "message": "Request validation failed",
                "details": {"errors": exc.errors()},
            },
        )

    @app.exception_handler(AuthenticationError)
    async def auth_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=401,
            content={
                "error": "authentication_error",
                "message": exc.message,
            },
        )

    @app.exception_handler(UnauthorizedError)
    async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=403,
            content={
                "error": "unauthorized",
                "message": exc.message,
            },
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "details": exc.details,
            },
        )

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
        _ = request
        return JSONResponse(
            status_code=409,
            content={
                "error": "conflict",
                "message": exc.message,
                "details": exc.details,
            },
        )

    @app.exception_handler(ExternalServiceError)
    async def external_service_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        _ = request
        logger.warning("upstream_unavailable", error=exc.message, details=exc.details)
        return JSONResponse(
            status_code=503,
            content={
                "error": "upstream_unavailable",
                "message": exc.message,
            },
        )

    @app.exception_handler(MeetAuctionError)
    async def meetauction_error_handler(request: Request, exc: MeetAuctionError) -> JSONResponse:
        _ = request
        logger.error("unhandled_error", error=exc.message, details=exc.details)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "An internal error occurred",
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        _ = request
        logger.exception("unexpected_error", error=str(exc))
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "An unexpected error occurred",
            },
        )


# Create app instance
app = create_app()
