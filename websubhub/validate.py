from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Mapping, Tuple

import httpx

from .config import settings
from .models import Mode, SubscriptionRequest

_INTEGER = re.compile(r"[+-]?[0-9]+")


def _callback(value: str) -> str | None:
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError):
        return None
    if url.scheme not in {"http", "https"} or not url.host:
        return None
    return value


def _lease(value: str) -> timedelta:
    if not _INTEGER.fullmatch(value):
        raise ValueError(value)
    lease = timedelta(seconds=int(value))
    if lease < timedelta(0):
        raise ValueError(value)
    # deadline must be representable
    datetime.now(timezone.utc) + lease
    return lease


def parse_subscription_form(
    form: Mapping[str, str],
) -> Tuple[bool, SubscriptionRequest | None, str | None]:
    mode = form.get("hub.mode", "")
    if mode not in {m.value for m in Mode}:
        return False, None, "invalid hub.mode value"

    topic = form.get("hub.topic", "")
    if not topic:
        return False, None, "missing hub.topic"

    callback = _callback(form.get("hub.callback", ""))
    if callback is None:
        return False, None, "invalid hub.callback"

    lease_raw = form.get("hub.lease_seconds", "")
    lease = timedelta(seconds=settings.DEFAULT_LEASE_SECONDS)
    if lease_raw:
        try:
            lease = _lease(lease_raw)
        except (ValueError, OverflowError):
            return False, None, "invalid hub.lease_seconds"

    secret = form.get("hub.secret", "")
    request = SubscriptionRequest(
        callback=callback,
        mode=Mode(mode),
        topic=topic,
        lease=lease,
        secret=secret.encode("utf-8"),
    )
    return True, request, None
