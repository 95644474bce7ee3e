"""Records exchanged between the HTTP boundary and the hub core."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LEASE = timedelta(hours=1)


class Mode(str, Enum):
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"


class Subscription(BaseModel):
    """One active callback registration, keyed by ``callback_url``.

    ``lease_deadline`` is stamped at creation and never enforced.
    """

    model_config = ConfigDict(frozen=True)

    callback_url: str
    topic: str = Field(min_length=1)
    lease: timedelta = DEFAULT_LEASE
    lease_deadline: datetime
    secret: bytes = Field(default=b"", repr=False)

    @classmethod
    def create(
        cls,
        callback_url: str,
        topic: str,
        lease: timedelta | None = None,
        secret: bytes = b"",
    ) -> "Subscription":
        lease = DEFAULT_LEASE if lease is None else lease
        return cls(
            callback_url=callback_url,
            topic=topic,
            lease=lease,
            lease_deadline=datetime.now(timezone.utc) + lease,
            secret=secret,
        )

    @property
    def signed(self) -> bool:
        return len(self.secret) > 0


class SubscriptionRequest(BaseModel):
    callback: str
    mode: Mode
    topic: str = Field(min_length=1)
    lease: timedelta | None = None
    secret: bytes = Field(default=b"", repr=False)

    def to_subscription(self) -> Subscription:
        return Subscription.create(
            self.callback, self.topic, lease=self.lease, secret=self.secret
        )


class PublishPayload(BaseModel):
    meep: str = "meep"
    mino: str = "mino"

    def encode(self) -> bytes:
        return json.dumps(self.model_dump(), separators=(",", ":")).encode("utf-8")


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    REJECTED = "rejected"
    TRANSPORT_ERROR = "transport_error"


@dataclass
class DeliveryOutcome:
    """Result of pushing one payload to one subscriber."""

    callback_url: str
    status: DeliveryStatus
    http_status: int | None = None
    error: str | None = None
    signature: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is DeliveryStatus.DELIVERED
