"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
use dependencies from schoolhub.api.v1.dependencies (no manual repo/service construction).
"""

from fastapi import APIRouter

from schoolhub.api.v1.endpoints import (
    conversations,
    health,
    onboarding,
    profile,
    websocket as ws_endpoint,
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(profile.router, prefix="/profile", tags=["profile"])
api_router.include_router(onboarding.router, prefix="/onboarding", tags=["onboarding"])
api_router.include_router(
    conversations.router, prefix="/conversations", tags=["conversations"]
)
api_router.include_router(ws_endpoint.router, prefix="/ws", tags=["websocket"])
