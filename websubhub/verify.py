"""Intent verification: prove the callback owner asked for the (un)subscribe."""

from __future__ import annotations

import hmac
import logging
import secrets

import httpx

from .metrics import VERIFICATIONS
from .models import Mode, Subscription

logger = logging.getLogger(__name__)

CHALLENGE_BYTES = 32


class VerificationError(Exception):
    """The callback did not echo the challenge."""


def new_challenge() -> str:
    # urlsafe base64 of 32 random bytes, no padding
    return secrets.token_urlsafe(CHALLENGE_BYTES)


def verification_url(subscription: Subscription, mode: Mode, challenge: str) -> httpx.URL:
    """Callback URL with the ``hub.*`` parameters appended to its query."""
    params = {
        "hub.mode": mode.value,
        "hub.topic": subscription.topic,
        "hub.challenge": challenge,
    }
    if mode is Mode.SUBSCRIBE:
        params["hub.lease"] = f"{subscription.lease.total_seconds():f}"
    url = httpx.URL(subscription.callback_url)
    query = url.params
    for key, value in params.items():
        query = query.add(key, value)
    return url.copy_with(params=query)


class Verifier:
    def __init__(self, client: httpx.AsyncClient, timeout: float = 5.0) -> None:
        self.client = client
        self.timeout = timeout

    async def verify(self, subscription: Subscription, mode: Mode) -> None:
        """Run one challenge round trip; raise ``VerificationError`` on any failure.

        Only the response body is checked. It must equal the challenge byte for
        byte. There are no retries.
        """
        challenge = new_challenge()
        url = verification_url(subscription, mode, challenge)
        try:
            response = await self.client.get(
                url, timeout=self.timeout, follow_redirects=True
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            VERIFICATIONS.labels(mode.value, "error").inc()
            raise VerificationError(f"verification request failed: {exc}") from exc

        if not hmac.compare_digest(response.content, challenge.encode("ascii")):
            VERIFICATIONS.labels(mode.value, "mismatch").inc()
            raise VerificationError("invalid challenge echo")

        VERIFICATIONS.labels(mode.value, "ok").inc()
        logger.debug(
            "verified %s for %s on topic %s",
            mode.value,
            subscription.callback_url,
            subscription.topic,
        )
