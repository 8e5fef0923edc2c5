"""
PadSplit Market Insights web API
FastAPI + server-side sessions
"""
import traceback
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from app.web.dependencies import build_services
from app.web.routers import api
from padsplit import config
from padsplit.exceptions import (
    AuthError,
    ExtractionError,
    NotFoundError,
    PadSplitError,
    PreconditionError,
    SessionError,
)
from padsplit.utils.logging_config import setup_default_logging

# Configure loguru
setup_default_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("PadSplit Market Insights starting up...")
    yield
    unfinished = app.state.services.orchestrator.running_jobs()
    if unfinished:
        logger.warning(
            "Shutting down with {count} scrape job(s) still running: {ids}",
            count=len(unfinished),
            ids=", ".join(job.id for job in unfinished),
        )
    logger.info("PadSplit Market Insights shutting down...")


app = FastAPI(
    title="PadSplit Market Insights",
    description="Per-zip-code market metrics scraped from the PadSplit host dashboard",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.services = build_services()

app.add_middleware(
    SessionMiddleware,
    secret_key=config.SESSION_SECRET,
    max_age=config.SESSION_MAX_AGE_SECONDS,
    https_only=config.SECURE_COOKIES,
    same_site="lax",
)

app.include_router(api.router, prefix="/api")

# Optional front-end bundle; API routes above take precedence
STATIC_DIR = Path(__file__).resolve().parent / "static"
if STATIC_DIR.is_dir():
    app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="static")


# =============================================================================
# Error Handlers
# =============================================================================

ERROR_STATUS = {
    AuthError: (401, "auth_error"),
    PreconditionError: (400, "precondition_failed"),
    NotFoundError: (404, "not_found"),
    SessionError: (503, "browser_session_error"),
    ExtractionError: (502, "extraction_error"),
}


def _generate_error_id() -> str:
    """Generate a short error ID for tracking."""
    return str(uuid.uuid4())[:8].upper()


def _status_for(exc: PadSplitError) -> tuple[int, str]:
    for exc_type, mapping in ERROR_STATUS.items():
        if isinstance(exc, exc_type):
            return mapping
    return 500, "internal_error"


@app.exception_handler(PadSplitError)
async def padsplit_error_handler(request: Request, exc: PadSplitError):
    """Map domain errors to HTTP statuses; the message is surfaced verbatim."""
    error_id = _generate_error_id()
    status_code, code = _status_for(exc)
    log_fn = logger.warning if status_code < 500 else logger.error
    log_fn(f"{type(exc).__name__} [ID: {error_id}]: {exc} - {request.method} {request.url}")

    return JSONResponse(
        status_code=status_code,
        content={
            "error": code,
            "message": str(exc),
            "error_id": error_id,
            "path": str(request.url.path),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with detailed output."""
    error_id = _generate_error_id()

    if exc.status_code >= 400:
        log_fn = logger.warning if exc.status_code < 500 else logger.error
        log_fn(f"HTTP {exc.status_code} [ID: {error_id}]: {exc.detail} - {request.method} {request.url}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "status_code": exc.status_code,
            "message": exc.detail,
            "error_id": error_id,
            "path": str(request.url.path),
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with detailed logging."""
    error_id = _generate_error_id()

    tb = traceback.format_exc()
    logger.error(
        f"Unhandled exception [ID: {error_id}]\n"
        f"Request: {request.method} {request.url}\n"
        f"Exception: {type(exc).__name__}: {exc}\n"
        f"Traceback:\n{tb}"
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": f"An unexpected error occurred: {type(exc).__name__}",
            "error_id": error_id,
            "details": str(exc),
            "path": str(request.url.path),
        },
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.web.main:app",
        host=config.WEB_HOST,
        port=config.WEB_PORT,
        reload=True,
    )
