"""Master API router — mounts all endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from app.api import health, relay

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router)

# The relay socket is mounted at the root: /ws
ws_router = APIRouter()

ws_router.include_router(relay.router)
