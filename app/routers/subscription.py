"""Subscription status endpoint."""

from fastapi import APIRouter, Depends

from app.dependencies import get_current_user_id
from app.schemas.documents import SubscriptionStatusResponse
from app.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/subscription", tags=["Subscription"])


@router.get("", response_model=SubscriptionStatusResponse)
async def get_subscription_status(user_id: str = Depends(get_current_user_id)):
    """Status, reports remaining this period and next billing date."""
    return await SubscriptionService.get_status(user_id)
