"""FastAPI application for the CareGrowth document assistant."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .... import __version__
from ....config import settings
from ....config.logging import setup_logging
from ....core.domain.exceptions import CareGrowthError
from ...common.exception_handler import (
    client_error_body,
    get_http_status_code,
    log_exception,
)
from .routers import documents, health, search

logger = logging.getLogger(__name__)

# Full error details and stack traces in responses
DEBUG_MODE = os.getenv("DEBUG", "false").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging on startup and log shutdown."""
    setup_logging(settings.log_level, settings.log_file, json_format=settings.log_json)
    logger.info("CareGrowth API starting up...")
    logger.info("Debug mode: %s", "ENABLED" if DEBUG_MODE else "DISABLED")
    yield
    logger.info("CareGrowth API shutting down...")


app = FastAPI(
    title="CareGrowth Document Assistant API",
    description=(
        "Answers questions about a home care agency's linked documents "
        "with cited, plain-text answers."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(search.router)
app.include_router(documents.router)


def _error_response(request: Request, exc: Exception) -> JSONResponse:
    status_code = get_http_status_code(exc)
    # 4xx are caller mistakes
    level = logging.WARNING if status_code < 500 else logging.ERROR
    log_exception(
        exc,
        level=level,
        extra_context={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(status_code=status_code, content=client_error_body(exc, debug=DEBUG_MODE))


@app.exception_handler(CareGrowthError)
async def caregrowth_error_handler(request: Request, exc: CareGrowthError) -> JSONResponse:
    """Log the structured error and return its client-safe form."""
    return _error_response(request, exc)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(request, exc)
