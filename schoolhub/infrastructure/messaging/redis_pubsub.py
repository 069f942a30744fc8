"""Redis Pub/Sub realtime channel for school-scoped insert events.

Each insert is published on realtime:{school_id}:{table}:{event} as the
JSON-encoded row. Conversation scopes subscribe per school and filter on
their participant pair.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import redis.asyncio as redis

from schoolhub.core.config import Settings, get_settings
from schoolhub.core.constants import KEY_SEP
from schoolhub.domain.exceptions import RealtimeUnavailableException

logger = logging.getLogger(__name__)


class RedisSubscription:
    """One PubSub on one channel. Iterate for rows; close() unsubscribes (idempotent)."""

    def __init__(self, pubsub: redis.client.PubSub, channel: str) -> None:
        self._pubsub = pubsub
        self._channel = channel
        self._closed = False

    @property
    def channel(self) -> str:
        return self._channel

    async def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        try:
            async for message in self._pubsub.listen():
                if self._closed:
                    return
                if message["type"] != "message":
                    continue
                try:
                    row = json.loads(message["data"])
                except (json.JSONDecodeError, TypeError):
                    logger.warning("Ignoring non-JSON message on %s", self._channel)
                    continue
                if isinstance(row, dict):
                    yield row
        except (redis.ConnectionError, redis.TimeoutError) as e:
            if self._closed:
                return
            raise RealtimeUnavailableException(str(e)) from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._pubsub.unsubscribe(self._channel)
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.debug("Unsubscribe from %s failed: %s", self._channel, e)
        await self._pubsub.aclose()
        logger.debug("Unsubscribed from %s", self._channel)


class RedisRealtimeChannel:
    """Publishes and subscribes to realtime insert events (implements IRealtimeChannel)."""

    CHANNEL_PREFIX = "realtime"

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize. Pass redis_client for DI/testing."""
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self._connected:
            return
        try:
            self.redis = redis.Redis(
                host=self.settings.redis_host,
                port=self.settings.redis_port,
                db=self.settings.redis_db,
                password=(
                    self.settings.redis_password.get_secret_value()
                    if self.settings.redis_password
                    else None
                ),
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await self.redis.ping()
            self._connected = True
            logger.info("Redis realtime channel connected")
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Redis realtime connection failed: %s", e)
            self._connected = False
            self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis realtime channel disconnected")

    def is_available(self) -> bool:
        """Return True if Redis is connected."""
        return self._connected and self.redis is not None

    def channel_name(self, school_id: str, table: str, event: str) -> str:
        return KEY_SEP.join((self.CHANNEL_PREFIX, school_id, table, event))

    async def subscribe(self, school_id: str, table: str, event: str) -> RedisSubscription:
        """Subscribe to one school's events for table/event."""
        if not self.is_available() or self.redis is None:
            raise RealtimeUnavailableException("redis not connected")
        channel = self.channel_name(school_id, table, event)
        pubsub = self.redis.pubsub()
        try:
            await pubsub.subscribe(channel)
        except (redis.ConnectionError, redis.TimeoutError) as e:
            await pubsub.aclose()
            raise RealtimeUnavailableException(str(e)) from e
        logger.info("Subscribed to %s", channel)
        return RedisSubscription(pubsub, channel)

    async def publish(
        self, school_id: str, table: str, event: str, row: dict[str, Any]
    ) -> bool:
        """Publish row to the school channel.

        Returns:
            True if published, False if Redis unavailable.
        """
        if not self.is_available() or self.redis is None:
            logger.debug("Redis not available, skipping publish")
            return False
        channel = self.channel_name(school_id, table, event)
        try:
            await self.redis.publish(channel, json.dumps(row))
        except (redis.ConnectionError, redis.TimeoutError):
            logger.exception("Failed to publish to %s", channel)
            return False
        logger.debug("Published %s %s to %s", table, event, channel)
        return True
