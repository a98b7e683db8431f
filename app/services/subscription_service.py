"""Subscription status and monthly report quota."""

from typing import Optional

from app.config import settings
from app.core.logging import logger
from app.models.document import MedicalDocument
from app.models.subscription import Subscription, SubscriptionStatus
from app.schemas.documents import SubscriptionStatusResponse
from app.shared.models import utcnow


class SubscriptionService:
    """Service computing what a user's subscription allows."""

    @staticmethod
    async def get_subscription(user_id: str) -> Optional[Subscription]:
        return await Subscription.find_one(Subscription.user_id == user_id)

    @staticmethod
    def has_access(subscription: Optional[Subscription]) -> bool:
        """
        Active and trialing subscriptions have access; cancelled ones keep it
        until the end of the paid period.
        """
        if subscription is None:
            return False
        if subscription.status in (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIALING.value):
            return True
        if subscription.status == SubscriptionStatus.CANCELLED.value:
            return utcnow() < subscription.current_period_end
        return False

    @classmethod
    async def get_status(cls, user_id: str) -> SubscriptionStatusResponse:
        """
        Report status, remaining reports and billing dates.

        Remaining reports are the monthly limit minus every document created
        since the start of the current billing period.
        """
        subscription = await cls.get_subscription(user_id)

        if not cls.has_access(subscription):
            return SubscriptionStatusResponse(
                status=SubscriptionStatus.INACTIVE.value,
                reports_remaining=0,
                next_billing_date=None,
            )

        reports_used = await MedicalDocument.find(
            MedicalDocument.user_id == user_id,
            MedicalDocument.created_at >= subscription.current_period_start,
        ).count()
        reports_remaining = max(0, settings.MONTHLY_REPORT_LIMIT - reports_used)

        logger.debug(f"User {user_id} used {reports_used} reports this period")

        status = subscription.status
        if subscription.cancel_at_period_end:
            status = SubscriptionStatus.CANCELLED.value

        return SubscriptionStatusResponse(
            status=status,
            reports_remaining=reports_remaining,
            next_billing_date=subscription.current_period_end,
            cancel_at_period_end=subscription.cancel_at_period_end,
            current_period_end=subscription.current_period_end,
            subscription_type=subscription.subscription_type,
        )

    @classmethod
    async def can_upload(cls, user_id: str, file_count: int = 1) -> Optional[str]:
        """
        Check whether ``file_count`` more documents may be created.
        Returns None when allowed, otherwise the reason for refusal.
        """
        status = await cls.get_status(user_id)

        if status.status == SubscriptionStatus.INACTIVE.value:
            return "Please subscribe to upload files"

        if status.reports_remaining < file_count:
            if status.status == SubscriptionStatus.CANCELLED.value:
                return "You have no credits remaining before your subscription ends"
            return "You've reached your monthly report limit. Please wait for your next billing cycle."

        return None
