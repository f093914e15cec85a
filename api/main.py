"""FastAPI service for Harmonik form drafts."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import ALLOWED_ORIGINS, get_settings, get_store
from api.routers import drafts_router
from harmonik.config import configure_logging
from harmonik.drafts import init_drafts

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    removed = init_drafts()
    logger.info(f"Startup draft sweep removed {removed} draft(s)")
    yield


app = FastAPI(
    title="Harmonik Drafts API",
    version="0.1.0",
    description="Form draft persistence for the Harmonious Habitats web client.",
    lifespan=lifespan,
)

origins = [origin for origin in ALLOWED_ORIGINS if origin]

if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(drafts_router, prefix="/drafts", tags=["drafts"])


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint with storage configuration."""
    settings = get_settings()
    return {
        "status": "ok",
        "backend": get_store().storage.name,
        "environment": settings.environment,
    }
