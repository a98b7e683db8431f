"""Subscription record mirrored from the billing provider."""

from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Indexed

from app.shared.models import TimestampedDocument


class SubscriptionStatus(str, Enum):
    """Billing state reported to the dashboard."""
    ACTIVE = "active"
    TRIALING = "trialing"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"
    INACTIVE = "inactive"


class Subscription(TimestampedDocument):
    """A user's current billing period; only used to compute report quota."""

    user_id: Indexed(str, unique=True)

    status: str = SubscriptionStatus.ACTIVE.value
    subscription_type: str = "Monthly"
    external_subscription_id: Optional[str] = None

    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool = False

    class Settings:
        name = "subscriptions"
