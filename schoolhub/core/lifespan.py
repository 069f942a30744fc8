"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic. Used by main.py; no business
logic here, only wiring of infrastructure (Firestore client, token
verifier, Redis realtime channel).
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from schoolhub.core.config import get_settings
from schoolhub.infrastructure.firebase.client import (
    close_firebase,
    get_firestore_client,
    init_firebase,
)
from schoolhub.infrastructure.messaging.redis_pubsub import RedisRealtimeChannel
from schoolhub.infrastructure.security.identity import FirebaseTokenVerifier, JwtTokenVerifier
from schoolhub.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: logging, Firestore client, token verifier, Redis
    realtime channel (if enabled). Shutdown: Redis disconnect, Firestore
    HTTP client close.
    """
    settings = get_settings()
    setup_logging()

    # ---- Startup ----
    if not init_firebase():
        logger.warning("Firestore not configured; store-backed endpoints will answer 503")
    app.state.firestore = get_firestore_client()

    if settings.auth_backend == "jwt":
        app.state.token_verifier = JwtTokenVerifier()
    else:
        project_id = settings.firebase_project_id or (
            app.state.firestore.project_id if app.state.firestore else ""
        )
        app.state.token_verifier = FirebaseTokenVerifier(project_id)

    if settings.redis_enabled:
        channel = RedisRealtimeChannel(settings=settings)
        await channel.connect()
        app.state.realtime = channel
    else:
        app.state.realtime = None
        logger.info("Realtime channel disabled; conversations reload periodically")

    yield

    # ---- Shutdown ----
    if getattr(app.state, "realtime", None) is not None:
        await app.state.realtime.disconnect()
        app.state.realtime = None

    await close_firebase()
    app.state.firestore = None
