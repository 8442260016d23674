"""Live query services."""

from printshop.services.live.subscription_service import (
    SubscriptionService,
    Subscription,
    LiveEvent,
)

__all__ = ["SubscriptionService", "Subscription", "LiveEvent"]
