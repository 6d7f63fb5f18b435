# src/sugarpot/main.py
"""Main entry point for the Sugarpot Stage application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from sugarpot.api.v1 import chat_router, matches_router, messages_router
from sugarpot.core.errors import SugarpotError
from sugarpot.core.settings import settings
from sugarpot.services.presence import PresenceRegistry

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Sugarpot API",
    description="Match state machine and realtime chat delivery",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(matches_router, prefix="/api/v1")
app.include_router(messages_router, prefix="/api/v1")
app.include_router(chat_router, prefix="/api/v1")


@app.exception_handler(SugarpotError)
async def handle_domain_error(request: Request, exc: SugarpotError) -> JSONResponse:
    """Render domain errors as ``{"detail", "code"}`` with their HTTP status."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.on_event("startup")
async def on_startup() -> None:
    # One registry per process; rebuilt empty on every start.
    app.state.presence = PresenceRegistry()
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    registry: PresenceRegistry | None = getattr(app.state, "presence", None)
    if registry is not None:
        logger.info("Shutting down with %d live connection(s)", len(registry))


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Sugarpot API",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("sugarpot.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
