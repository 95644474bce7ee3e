from __future__ import annotations

import logging

import httpx

from .metrics import SUBSCRIPTIONS
from .models import DeliveryOutcome, Mode, PublishPayload, Subscription, SubscriptionRequest
from .publish import Publisher
from .registry import SubscriptionRegistry
from .verify import Verifier

logger = logging.getLogger(__name__)


class Hub:
    """Owns the registry and drives verification and fan-out against it."""

    def __init__(
        self,
        registry: SubscriptionRegistry,
        verifier: Verifier,
        publisher: Publisher,
        filter_by_topic: bool = False,
    ) -> None:
        self.registry = registry
        self.verifier = verifier
        self.publisher = publisher
        self.filter_by_topic = filter_by_topic

    @classmethod
    def from_client(
        cls,
        client: httpx.AsyncClient,
        *,
        verify_timeout: float = 5.0,
        delivery_timeout: float = 5.0,
        concurrency: int = 8,
        filter_by_topic: bool = False,
    ) -> "Hub":
        return cls(
            SubscriptionRegistry(),
            Verifier(client, timeout=verify_timeout),
            Publisher(client, timeout=delivery_timeout, concurrency=concurrency),
            filter_by_topic=filter_by_topic,
        )

    async def subscribe(self, request: SubscriptionRequest) -> Subscription:
        """Verify intent, then insert or remove the callback's entry.

        ``VerificationError`` propagates and leaves the registry untouched.
        """
        subscription = request.to_subscription()
        await self.verifier.verify(subscription, request.mode)

        if request.mode is Mode.SUBSCRIBE:
            self.registry.upsert(subscription.callback_url, subscription)
        else:
            self.registry.remove(subscription.callback_url)
        SUBSCRIPTIONS.set(len(self.registry))
        logger.debug("%s %r", request.mode.value, subscription)
        return subscription

    async def publish(
        self, topic: str, payload: PublishPayload | None = None
    ) -> list[DeliveryOutcome]:
        subscriptions = self.registry.snapshot()
        if self.filter_by_topic:
            subscriptions = [s for s in subscriptions if s.topic == topic]
        body = (payload or PublishPayload()).encode()
        outcomes = await self.publisher.publish(subscriptions, body)
        failed = sum(1 for o in outcomes if not o.ok)
        logger.info(
            "published topic=%s subscribers=%d failed=%d", topic, len(outcomes), failed
        )
        return outcomes
