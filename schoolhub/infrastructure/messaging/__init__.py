"""Realtime messaging (Redis pub/sub)."""

from schoolhub.infrastructure.messaging.redis_pubsub import (
    RedisRealtimeChannel,
    RedisSubscription,
)

__all__ = ["RedisRealtimeChannel", "RedisSubscription"]
