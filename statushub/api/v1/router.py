from __future__ import annotations
"""statushub/api/v1/router.py
~~~~~~~~~~~~~~~~~~~~~~~~
Router principal API v1.
"""
from fastapi import APIRouter

from statushub.api.v1.endpoints import cron, health, webhooks

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(cron.router, tags=["cron"])
api_router.include_router(webhooks.router, tags=["webhooks"])
