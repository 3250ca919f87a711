"""FastAPI application factory."""

import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from freelance_ledger.api.routes import (
    client_router,
    closure_router,
    expense_router,
    health_router,
    hour_record_router,
    task_router,
    task_type_router,
)
from freelance_ledger.config import get_settings
from freelance_ledger.container import get_container, reset_container
from freelance_ledger.exceptions import FreelanceLedgerError
from freelance_ledger.logging_config import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

GENERIC_ERROR_BODY = {
    "error": "INTERNAL_ERROR",
    "message": "An internal error occurred",
    "context": {},
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and open the database; release it on shutdown."""
    settings = get_settings()
    configure_logging(settings)

    _ = get_container().database
    logger.info(
        "api_started",
        version=settings.app_version,
        environment=settings.environment.value,
        sqlite_path=str(settings.sqlite_path),
    )
    try:
        yield
    finally:
        reset_container()
        logger.info("api_stopped")


async def log_request_middleware(request: Request, call_next):
    """Bind request_id and owner_id to every event logged for the request.

    A caller-supplied X-Request-Id is reused and echoed back.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
    bind_context(
        request_id=request_id,
        owner_id=request.headers.get("X-Owner-Id"),
        route=f"{request.method} {request.url.path}",
    )
    started = time.perf_counter()
    try:
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.debug(
            "request_finished",
            status_code=response.status_code,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response
    finally:
        clear_context()


async def exception_handler(
    request: Request, exc: FreelanceLedgerError
) -> JSONResponse:
    """Map domain exceptions to their status code; hide infrastructure detail."""
    if exc.status_code >= 500:
        logger.error(
            "infrastructure_exception",
            error_code=exc.error_code,
            message=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=GENERIC_ERROR_BODY)

    logger.warning(
        "domain_exception",
        error_code=exc.error_code,
        message=exc.message,
        context=exc.context,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return JSONResponse(status_code=500, content=GENERIC_ERROR_BODY)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Freelance time tracking and monthly billing closures",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.middleware("http")(log_request_middleware)

    app.add_exception_handler(FreelanceLedgerError, exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)

    app.include_router(health_router)
    app.include_router(client_router)
    app.include_router(task_type_router)
    app.include_router(task_router)
    app.include_router(hour_record_router)
    app.include_router(expense_router)
    app.include_router(closure_router)

    return app


def main() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "freelance_ledger.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


# Create app instance for uvicorn
app = create_app()
