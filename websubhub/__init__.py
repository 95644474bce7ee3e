"""WebSub-style hub: verified callback subscriptions and signed publish fan-out.

The ASGI application lives in :mod:`websubhub.main`; importing it configures
logging, so it is not imported here.
"""

from .hub import Hub
from .models import DeliveryOutcome, DeliveryStatus, Mode, PublishPayload, Subscription
from .registry import SubscriptionRegistry
from .verify import VerificationError

__version__ = "0.1.0"

__all__ = [
    "DeliveryOutcome",
    "DeliveryStatus",
    "Hub",
    "Mode",
    "PublishPayload",
    "Subscription",
    "SubscriptionRegistry",
    "VerificationError",
    "__version__",
]
