# src/freelance_chat/main.py
"""Main entry point for the messaging service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from freelance_chat.api.v1 import live_router, messages_router
from freelance_chat.core.errors import ChatError
from freelance_chat.core.log import configure_logging
from freelance_chat.core.settings import settings
from freelance_chat.realtime import DeliveryService, Gateway, PresenceRegistry

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Freelance Chat API",
    description="Real-time messaging between employers and freelancers",
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
app.include_router(messages_router, prefix="/api/v1")
app.include_router(live_router)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Render domain errors as ``{"message": ...}`` with their HTTP status."""
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    registry = PresenceRegistry()
    delivery = DeliveryService(registry)
    app.state.presence = registry
    app.state.delivery = delivery
    app.state.gateway = Gateway(registry, delivery)
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    registry: PresenceRegistry | None = getattr(app.state, "presence", None)
    if registry is not None:
        logger.info("Shutting down with %d live connections", len(registry))


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Freelance Chat API",
        "version": settings.app_version,
        "description": "Real-time messaging between employers and freelancers",
        "docs": "/docs",
        "live": "/ws",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("freelance_chat.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
