"""Redis Pub/Sub for domain events.

Other services publish CRM events (lead_created, message_received, ...) as
JSON on one channel; the listener feeds them to the trigger matcher in
arrival order.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

import redis.asyncio as redis

from autoflow.core.config import get_settings
from autoflow.domain.entities import DomainEvent

if TYPE_CHECKING:
    from autoflow.infrastructure.services.trigger_matcher import TriggerMatcher

logger = logging.getLogger(__name__)


class _RedisPubSubBase:
    """Shared Redis connection and channel logic for domain event pub/sub."""

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        """Initialize. Pass redis_client for DI/testing."""
        self.redis = redis_client
        self.settings = get_settings()
        self.channel = self.settings.event_channel
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self._connected:
            return
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password.get_secret_value()
                    if self.settings.redis_password
                    else None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                )
                await self.redis.ping()
                self._connected = True
                logger.info("Redis pub/sub connected")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis pub/sub connection failed: %s", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis pub/sub disconnected")

    def is_available(self) -> bool:
        """Return True if Redis is connected."""
        return self._connected and self.redis is not None


class DomainEventPublisher(_RedisPubSubBase):
    """Publishes domain events for the automation engine to pick up."""

    async def publish(self, event: DomainEvent) -> bool:
        """Publish the event.

        Returns:
            True if published, False if Redis unavailable or publishing failed.
        """
        if not self.is_available() or self.redis is None:
            logger.debug("Redis not available, skipping publish")
            return False
        try:
            await self.redis.publish(self.channel, json.dumps(event.to_dict()))
            logger.debug("Published %s event for org %s", event.type, event.org_id)
        except (redis.ConnectionError, redis.TimeoutError):
            logger.exception("Failed to publish domain event")
            return False
        else:
            return True


class RedisDomainEventSubscriber(_RedisPubSubBase):
    """Yields domain events from the channel in arrival order.

    Malformed messages are logged and skipped.
    """

    async def events(self) -> AsyncIterator[DomainEvent]:
        if not self.is_available() or self.redis is None:
            logger.warning("Redis not available for subscription")
            return
        pubsub = self.redis.pubsub()
        try:
            await pubsub.subscribe(self.channel)
            logger.info("Subscribed to %s", self.channel)
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    data = json.loads(message["data"])
                    yield DomainEvent.from_dict(data)
                except (json.JSONDecodeError, KeyError, TypeError, AttributeError):
                    logger.warning("Skipping malformed domain event: %.200r", message["data"])
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()
            logger.info("Unsubscribed from %s", self.channel)


async def consume_events(
    events: AsyncIterator[DomainEvent], matcher: TriggerMatcher
) -> int:
    """Hand each event to the matcher, one at a time. Returns the number consumed.

    A failure while matching one event is logged and does not stop the stream.
    """
    consumed = 0
    async for event in events:
        consumed += 1
        try:
            await matcher.handle_event(event)
        except Exception:
            logger.exception("Failed to handle %s event for org %s", event.type, event.org_id)
    return consumed


async def run_domain_event_listener(matcher: TriggerMatcher) -> None:
    """Subscribe to the domain event channel and feed the matcher.

    Call as a background task from lifespan when Redis is enabled. Cancelling the task stops the loop.
    """
    subscriber = RedisDomainEventSubscriber()
    await subscriber.connect()
    if not subscriber.is_available():
        logger.warning("Redis not available, domain event listener not started")
        return
    try:
        await consume_events(subscriber.events(), matcher)
    except asyncio.CancelledError:
        logger.info("Domain event listener cancelled")
        raise
    except (redis.ConnectionError, redis.TimeoutError):
        logger.exception("Domain event listener lost its Redis connection")
    finally:
        await subscriber.disconnect()
