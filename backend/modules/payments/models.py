"""
Payments module data models.

These models define the data structures used by the payments module
and exposed to other modules through the interface.
"""

import math
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from modules.errors.models import ClassifiedError


class Platform(str, Enum):
    """Supported in-app purchase platforms."""

    IOS = "ios"
    ANDROID = "android"


class CreditPackage(BaseModel):
    """
    A purchasable credit package.

    Package IDs match the product IDs configured in App Store Connect
    and the Google Play Console.
    """

    id: str = Field(..., description="Product ID")
    name: str = Field(..., description="Display name")
    credits: int = Field(..., gt=0, description="Credits granted")
    price: Decimal = Field(..., description="Price in the package currency")
    currency: str = Field(default="USD", description="Currency code")
    popular: bool = Field(default=False, description="Whether to highlight this package")

    model_config = {"frozen": True}


class SubscriptionPlan(BaseModel):
    """A recurring plan that grants credits every month."""

    id: str = Field(..., description="Product ID")
    name: str = Field(..., description="Display name")
    monthly_credits: int = Field(..., gt=0, description="Credits granted per month")
    price: Decimal = Field(..., description="Price per billing period")
    currency: str = Field(default="USD", description="Currency code")
    duration: Literal["monthly", "yearly"] = Field(..., description="Billing period")
    features: tuple[str, ...] = Field(default=(), description="Marketing feature list")

    model_config = {"frozen": True}


class PurchaseReceipt(BaseModel):
    """
    A platform purchase receipt submitted by the client.

    The platform is accepted as a plain string so unsupported values can be
    rejected by the processor with a typed error.
    """

    platform: str = Field(..., description="Purchase platform (ios or android)")
    receipt_data: str = Field(..., description="Raw receipt payload")
    product_id: str = Field(..., description="Purchased product ID")
    transaction_id: Optional[str] = Field(
        None,
        description="Platform transaction ID reported by the client",
    )
    purchase_date: Optional[datetime] = Field(None, description="Client-reported purchase time")


class ValidationResult(BaseModel):
    """Outcome of validating a receipt with the platform."""

    valid: bool = Field(..., description="Whether the receipt is genuine")
    product_id: Optional[str] = Field(None, description="Validated product ID")
    transaction_id: Optional[str] = Field(None, description="Platform transaction ID")
    purchase_date: Optional[datetime] = Field(None, description="Purchase time")
    error: Optional[ClassifiedError] = Field(None, description="Why validation failed")


class TransactionRecord(BaseModel):
    """
    A processed platform purchase.

    transaction_id is the idempotency key for purchases and the lookup key
    for refunds. credits_granted is persisted at purchase time so refunds
    never depend on the current catalog.
    """

    transaction_id: str = Field(..., description="Platform transaction ID")
    user_id: str = Field(..., description="Purchasing user")
    product_id: str = Field(..., description="Purchased product ID")
    platform: Platform = Field(..., description="Purchase platform")
    credits_granted: int = Field(..., gt=0, description="Credits granted by the purchase")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the purchase was processed",
    )
    refunded_at: Optional[datetime] = Field(None, description="When the purchase was refunded")

    model_config = {"frozen": True}

    @property
    def refunded(self) -> bool:
        return self.refunded_at is not None


class PurchaseResult(BaseModel):
    """Result of a successful purchase."""

    success: bool = Field(default=True)
    transaction_id: str = Field(..., description="Platform transaction ID")
    credits_added: int = Field(..., description="Credits added")
    new_balance: int = Field(..., description="Balance after the purchase")
    subscription: Optional["Subscription"] = Field(
        None,
        description="Subscription started or renewed by a plan purchase",
    )


class RefundResult(BaseModel):
    """Result of a successful refund. credits_added is negative."""

    success: bool = Field(default=True)
    transaction_id: str = Field(..., description="Refunded platform transaction ID")
    credits_added: int = Field(..., description="Negative credit change")
    new_balance: int = Field(..., description="Balance after the refund")


class RefundRequest(BaseModel):
    """Request to refund a processed purchase."""

    transaction_id: str = Field(..., description="Platform transaction ID to refund")
    reason: str = Field(..., min_length=1, description="Why the purchase is refunded")


class SubscriptionStatus(str, Enum):
    """Lifecycle state of a subscription."""

    ACTIVE = "active"
    CANCELED = "canceled"  # Benefits run until end_date, no renewal
    EXPIRED = "expired"


def generate_subscription_id() -> str:
    """Generate a unique subscription ID."""
    return f"sub_{uuid.uuid4().hex}"


class Subscription(BaseModel):
    """
    A user's subscription to a plan.

    A canceled subscription keeps its benefits until end_date. Every paid
    period is tied to the platform transaction that paid for it.
    """

    id: str = Field(default_factory=generate_subscription_id, description="Subscription ID")
    user_id: str = Field(..., description="Subscribed user")
    plan_id: str = Field(..., description="Subscription plan ID")
    status: SubscriptionStatus = Field(default=SubscriptionStatus.ACTIVE)
    start_date: datetime = Field(..., description="When the subscription started")
    end_date: datetime = Field(..., description="When the current paid period ends")
    auto_renew: bool = Field(default=True, description="Whether the platform will renew")
    last_transaction_id: str = Field(..., description="Transaction that paid the current period")
    last_payment_date: datetime = Field(..., description="When the current period was paid")
    canceled_at: Optional[datetime] = Field(None, description="When the user canceled")
    cancel_reason: Optional[str] = Field(None, description="Why the user canceled")

    model_config = {"frozen": True}

    def is_current(self, now: datetime) -> bool:
        """Whether the subscription grants benefits at the given time."""
        return self.status != SubscriptionStatus.EXPIRED and self.end_date > now

    def days_remaining(self, now: datetime) -> int:
        if not self.is_current(now):
            return 0
        return math.ceil((self.end_date - now).total_seconds() / 86400)


class SubscriptionBenefits(BaseModel):
    """What a user's current tier unlocks."""

    monthly_credits: int = Field(default=0, description="Credits granted per month")
    priority_processing: bool = Field(default=False)
    exclusive_styles: bool = Field(default=False)
    no_ads: bool = Field(default=False)
    features: list[str] = Field(default_factory=list, description="Marketing feature list")


class SubscriptionOverview(BaseModel):
    """The current user's subscription state."""

    subscription: Optional[Subscription] = Field(None, description="Current subscription, if any")
    plan: Optional[SubscriptionPlan] = Field(None, description="Plan of the current subscription")
    days_remaining: int = Field(default=0, description="Days left in the paid period")
    benefits: SubscriptionBenefits = Field(..., description="Benefits of the current tier")


class CancelSubscriptionRequest(BaseModel):
    """Request to stop a subscription from renewing."""

    reason: str = Field(..., min_length=1, description="Why the user is canceling")


PurchaseResult.model_rebuild()
