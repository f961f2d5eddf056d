"""
Payment endpoints.

Exposes the credit catalog, applies platform purchases and refunds, and
reports or cancels the current subscription.
"""

from fastapi import APIRouter, Depends

from shared.models import AuthenticatedUser
from modules.payments import (
    CancelSubscriptionRequest,
    CreditPackage,
    IPurchaseProcessor,
    ISubscriptionManager,
    PurchaseReceipt,
    PurchaseResult,
    RefundRequest,
    RefundResult,
    Subscription,
    SubscriptionOverview,
    SubscriptionPlan,
    TransactionRecord,
)
from ..dependencies import get_purchase_processor, get_subscription_manager
from ..middleware.auth import get_current_user

router = APIRouter()


@router.get("/packages", response_model=list[CreditPackage])
async def list_packages(
    processor: IPurchaseProcessor = Depends(get_purchase_processor),
) -> list[CreditPackage]:
    """List purchasable credit packages."""
    return processor.get_credit_packages()


@router.get("/plans", response_model=list[SubscriptionPlan])
async def list_plans(
    processor: IPurchaseProcessor = Depends(get_purchase_processor),
) -> list[SubscriptionPlan]:
    """List subscription plans."""
    return processor.get_subscription_plans()


@router.post("/purchase", response_model=PurchaseResult)
async def purchase(
    receipt: PurchaseReceipt,
    user: AuthenticatedUser = Depends(get_current_user),
    processor: IPurchaseProcessor = Depends(get_purchase_processor),
) -> PurchaseResult:
    """
    Validate a platform receipt and credit the purchased package or plan.

    A plan purchase starts the subscription, or renews the current one.

    Replaying a receipt returns 409 DUPLICATE_TRANSACTION without
    crediting again.
    """
    return await processor.process_purchase(user.id, receipt)


@router.post("/refund", response_model=RefundResult)
async def refund(
    request: RefundRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    processor: IPurchaseProcessor = Depends(get_purchase_processor),
) -> RefundResult:
    """Claw back the credits granted by a purchase."""
    return await processor.process_refund(user.id, request.transaction_id, request.reason)


@router.get("/history", response_model=list[TransactionRecord])
async def purchase_history(
    user: AuthenticatedUser = Depends(get_current_user),
    processor: IPurchaseProcessor = Depends(get_purchase_processor),
) -> list[TransactionRecord]:
    """List the current user's processed purchases, most recent first."""
    return await processor.get_purchase_history(user.id)


@router.get("/subscription", response_model=SubscriptionOverview)
async def get_subscription(
    user: AuthenticatedUser = Depends(get_current_user),
    subscriptions: ISubscriptionManager = Depends(get_subscription_manager),
) -> SubscriptionOverview:
    """Get the current user's subscription and the benefits of their tier."""
    return await subscriptions.get_overview(user.id)


@router.post("/subscription/cancel", response_model=Subscription)
async def cancel_subscription(
    request: CancelSubscriptionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    subscriptions: ISubscriptionManager = Depends(get_subscription_manager),
) -> Subscription:
    """
    Stop the current subscription from renewing.

    Benefits continue until the paid period ends.
    """
    return await subscriptions.cancel(user.id, request.reason)
