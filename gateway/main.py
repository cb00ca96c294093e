"""Integration Gateway - FastAPI Application Factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gateway.api import api_router
from gateway.core import async_session_maker, settings, setup_logging
from gateway.core.errors import GatewayError, InvalidRequestError, ServerError
from gateway.core.logging import get_logger
from gateway.middleware import (
    FixedWindowRateLimiter,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
)
from gateway.services.auth import TokenService
from gateway.services.credential_store import CredentialStore
from gateway.services.http_gateway import HttpGateway
from gateway.services.integrations import IntegrationRegistry
from gateway.services.proxy import ProxyDispatcher
from gateway.services.webhooks import WebhookAuthenticator, WebhookProcessor
from gateway.transformers import TransformerRegistry, register_default_transformers

logger = get_logger("main")


def task_done_callback(task: asyncio.Task[None]) -> None:
    """Log unhandled exceptions from background tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background task {task.get_name()} failed: {exc}")


async def _session_sweep_loop() -> None:
    """Periodically delete sessions whose access token has expired."""
    while True:
        await asyncio.sleep(settings.session_sweep_interval_seconds)
        try:
            async with async_session_maker() as db:
                removed = await TokenService(CredentialStore(db)).sweep_expired()
            if removed > 0:
                logger.info(f"Swept {removed} expired sessions")
        except Exception:
            logger.exception("Error sweeping expired sessions")


async def _rate_limit_cleanup_loop(limiter: FixedWindowRateLimiter) -> None:
    """Drop elapsed rate limit windows so idle callers do not accumulate."""
    while True:
        await asyncio.sleep(max(settings.rate_limit_window_seconds, 60))
        removed = limiter.cleanup_expired()
        if removed > 0:
            logger.debug(f"Rate limiter cleanup: removed {removed} windows")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    setup_logging(level=settings.log_level, format_type=settings.log_format)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    for warning in settings.check_security_configuration():
        logger.warning(f"SECURITY: {warning}")

    tasks: list[asyncio.Task] = []
    sweep_task = asyncio.create_task(_session_sweep_loop(), name="session-sweep")
    sweep_task.add_done_callback(task_done_callback)
    tasks.append(sweep_task)

    cleanup_task = asyncio.create_task(
        _rate_limit_cleanup_loop(app.state.rate_limiter), name="rate-limit-cleanup"
    )
    cleanup_task.add_done_callback(task_done_callback)
    tasks.append(cleanup_task)

    yield

    logger.info("Shutting down...")
    for task in tasks:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await app.state.http_gateway.close()


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = InvalidRequestError("Malformed request body")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = ServerError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(
    integrations: IntegrationRegistry | None = None,
    transformers: TransformerRegistry | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
    webhook_processor: WebhookProcessor | None = None,
    rate_limiter: FixedWindowRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Registries and the outbound gateway are built here, once, before any
    request is served, and stored on ``app.state``. Tests pass their own.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Authenticated integration gateway",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    if integrations is None:
        integrations = IntegrationRegistry.from_settings(settings)
    if transformers is None:
        transformers = register_default_transformers(TransformerRegistry())
    if rate_limiter is None:
        rate_limiter = FixedWindowRateLimiter(
            max_requests=settings.rate_limit_requests_per_window,
            window_seconds=settings.rate_limit_window_seconds,
        )

    http_gateway = HttpGateway(integrations, transport=http_transport)
    app.state.integrations = integrations
    app.state.transformers = transformers
    app.state.http_gateway = http_gateway
    app.state.proxy = ProxyDispatcher(integrations, transformers, http_gateway)
    app.state.webhooks = WebhookAuthenticator(integrations, processor=webhook_processor)
    app.state.rate_limiter = rate_limiter

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.add_middleware(RequestLoggingMiddleware)

    # Health endpoint excluded for container/monitoring probes
    app.add_middleware(
        RateLimitMiddleware,
        limiter=rate_limiter,
        trusted_proxies=settings.trusted_proxy_ip_set,
        exclude_paths=["/health"],
        enabled=settings.rate_limit_enabled,
    )

    # CORS middleware - outermost (added last in Starlette LIFO order)
    if settings.cors_origins_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", "Accept", "X-Webhook-Signature"],
        )

    if settings.enable_metrics:
        from prometheus_fastapi_instrumentator import Instrumentator

        Instrumentator(excluded_handlers=["/health", "/metrics"]).instrument(app).expose(
            app, endpoint="/metrics", include_in_schema=False
        )

    app.include_router(api_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with service information."""
        return {"name": settings.app_name, "version": settings.app_version}

    return app


# Application instance
app = create_app()
