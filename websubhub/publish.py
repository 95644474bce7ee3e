"""Fan-out of a published payload to subscriber callbacks."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
from typing import Iterable

import httpx

from .metrics import DELIVERIES
from .models import DeliveryOutcome, DeliveryStatus, Subscription

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature"


def sign(secret: bytes, payload: bytes) -> str:
    digest = hmac.new(secret, payload, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class Publisher:
    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = 5.0,
        concurrency: int = 8,
    ) -> None:
        self.client = client
        self.timeout = timeout
        self.concurrency = max(1, concurrency)

    async def deliver(self, subscription: Subscription, payload: bytes) -> DeliveryOutcome:
        """POST ``payload`` to one callback. Failures come back as outcomes."""
        callback = subscription.callback_url
        headers = {"Content-Type": "application/json"}
        signature: str | None = None
        if subscription.signed:
            signature = sign(subscription.secret, payload)
            headers[SIGNATURE_HEADER] = signature
            logger.debug("signed delivery to %s: %s", callback, signature)

        try:
            response = await self.client.post(
                callback,
                content=payload,
                headers=headers,
                timeout=self.timeout,
                follow_redirects=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("failed to notify subscriber callback=%s err=%s", callback, exc)
            outcome = DeliveryOutcome(
                callback_url=callback,
                status=DeliveryStatus.TRANSPORT_ERROR,
                error=str(exc) or exc.__class__.__name__,
                signature=signature,
            )
        else:
            if 200 <= response.status_code <= 299:
                status = DeliveryStatus.DELIVERED
            else:
                logger.error(
                    "callback returned non-2xx status callback=%s status=%s",
                    callback,
                    response.status_code,
                )
                status = DeliveryStatus.REJECTED
            outcome = DeliveryOutcome(
                callback_url=callback,
                status=status,
                http_status=response.status_code,
                signature=signature,
            )

        DELIVERIES.labels(outcome.status.value).inc()
        return outcome

    async def publish(
        self, subscriptions: Iterable[Subscription], payload: bytes
    ) -> list[DeliveryOutcome]:
        """Deliver to every subscription concurrently, one outcome each."""
        sem = asyncio.Semaphore(self.concurrency)

        async def _one(subscription: Subscription) -> DeliveryOutcome:
            async with sem:
                return await self.deliver(subscription, payload)

        return list(await asyncio.gather(*[_one(s) for s in subscriptions]))
