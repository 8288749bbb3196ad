"""
FastAPI application for the annotrack dashboard API
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from annotrack.exceptions import InvalidModalityError, StorageError, UpstreamAPIError

from .dependencies import get_services
from .router import router

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Prevent clickjacking by denying framing
        response.headers["X-Frame-Options"] = "DENY"

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle.

    On startup, resume the daily refresh if it was enabled before the last
    shutdown. On shutdown, stop its thread without changing that setting.
    """
    services = get_services()
    if services.scheduler.auto_start():
        logger.info("Daily refresh resumed from saved configuration")

    yield

    services.scheduler.shutdown()


app = FastAPI(
    title="annotrack",
    description="Annotation metrics aggregation and growth tracking",
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(f"Storage error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(UpstreamAPIError)
async def upstream_error_handler(request: Request, exc: UpstreamAPIError) -> JSONResponse:
    logger.error(f"Annotation tool error on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"error": str(exc)})


@app.exception_handler(InvalidModalityError)
async def invalid_modality_handler(request: Request, exc: InvalidModalityError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)  # ty: ignore[invalid-argument-type]

# CORS middleware - credentials disabled for security with wildcard origins
app.add_middleware(
    CORSMiddleware,  # ty: ignore[invalid-argument-type]
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "X-Requested-With"],
)

app.include_router(router)
