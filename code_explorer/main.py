# code_explorer/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from code_explorer import __version__
from code_explorer.api.routers.explorer_router import router as explorer_router
from code_explorer.api.routers.health_router import router as health_router
from code_explorer.api.services.audit_log import AuditLog, JsonFileAuditStore
from code_explorer.api.services.rate_limiter import RateLimiter
from code_explorer.api.services.repository_service import GitHubRepository, RepositoryClient
from code_explorer.auth import auth_router
from code_explorer.auth.service import AuthService
from code_explorer.auth.session import SessionCodec, SessionCookie
from code_explorer.core.clock import SystemClock
from code_explorer.core.exceptions import GatewayError, Unauthenticated
from code_explorer.core.settings import Settings, settings as default_settings
from code_explorer.utils.logging_setup import setup_logging
from code_explorer.utils.scheduling import PeriodicTask

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: start the rate limiter sweep and the periodic audit flush.
    Shutdown: stop both, then make a final best-effort flush.
    """
    settings: Settings = app.state.settings
    setup_logging("code_explorer", level=settings.log_level, log_file=settings.log_file)

    if not settings.access_password:
        logger.warning("CODE_EXPLORER_PASSWORD is not set; every login attempt will fail")
    if "session_secret" not in settings.model_fields_set:
        logger.warning("No SESSION_SECRET set. Using an auto-generated key (sessions reset on restart)")

    tasks = [
        PeriodicTask(
            "rate-limit-sweep",
            settings.rate_limit_sweep_interval_seconds,
            app.state.rate_limiter.sweep,
        ),
        PeriodicTask(
            "audit-flush",
            settings.audit_flush_interval_seconds,
            app.state.audit_log.flush_async,
        ),
    ]
    for task in tasks:
        task.start()
    logger.info(f"Code Explorer v{__version__} starting ({settings.environment})")

    yield

    for task in tasks:
        await task.stop()
    await app.state.audit_log.drain()
    if not await app.state.audit_log.flush_async():
        logger.error(f"Final audit flush failed; {app.state.audit_log.pending} entries lost")
    logger.info("Code Explorer shutting down")


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    response = JSONResponse(status_code=exc.status_code, content=exc.to_payload())
    if isinstance(exc, Unauthenticated) and exc.persist is not None:
        request.app.state.auth_service.cookie.write(response, exc.persist)
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = ", ".join(
        ".".join(str(loc) for loc in error["loc"] if loc not in ("body", "query"))
        for error in exc.errors()
    )
    message = f"Invalid request parameter: {fields}" if fields else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[RepositoryClient] = None,
    clock=None,
) -> FastAPI:
    settings = settings or default_settings
    clock = clock or SystemClock()

    app = FastAPI(
        title="Code Explorer API",
        version=__version__,
        lifespan=lifespan,
    )

    # Shared state: built once, reached by routers through dependencies
    rate_limiter = RateLimiter(
        clock=clock,
        stale_after_ms=int(settings.rate_limit_stale_after_seconds * 1000),
    )
    audit_log = AuditLog(
        JsonFileAuditStore(settings.audit_log_path),
        clock=clock,
        buffer_size=settings.audit_buffer_size,
        retention=settings.audit_retention,
    )
    cookie = SessionCookie(
        SessionCodec(settings.session_secret),
        name=settings.session_cookie_name,
        max_age=settings.session_max_age_seconds,
        secure=settings.cookie_secure,
    )
    app.state.settings = settings
    app.state.rate_limiter = rate_limiter
    app.state.audit_log = audit_log
    app.state.repository = repository or GitHubRepository.from_settings(settings)
    app.state.auth_service = AuthService(
        password=settings.access_password,
        cookie=cookie,
        rate_limiter=rate_limiter,
        audit_log=audit_log,
        clock=clock,
        inactivity_limit_ms=settings.session_inactivity_seconds * 1000,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(explorer_router)

    return app


# Uvicorn entrypoint: uvicorn code_explorer.main:app --reload
app = create_app()
