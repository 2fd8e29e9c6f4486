from __future__ import annotations
"""statushub/main.py
~~~~~~~~~~~~~~~~~~~~~~~~
Point d'entrée FastAPI.
"""
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from statushub.api.v1.router import api_router
from statushub.application.services.live_cache import LiveCache
from statushub.core.config import settings
from statushub.core.logging import setup_logging

app = FastAPI(title="StatusHub Alerts", version="1.0.0")
app.state.live_cache = LiveCache(ttl_seconds=settings.LIVE_CACHE_TTL_SECONDS)

allow_origins: List[str] = []
if origins := getattr(settings, "CORS_ALLOW_ORIGINS", None):
    allow_origins = [o.strip() for o in origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup() -> None:
    setup_logging()


app.include_router(api_router, prefix="/api/v1")
