"""
Payments module interfaces.

Platform receipt validators, the transaction-record store and the
subscription store are collaborators injected into the PurchaseProcessor
and SubscriptionManager.
"""

from typing import Optional, Protocol, runtime_checkable

from .models import (
    CreditPackage,
    PurchaseReceipt,
    PurchaseResult,
    RefundResult,
    Subscription,
    SubscriptionBenefits,
    SubscriptionOverview,
    SubscriptionPlan,
    TransactionRecord,
    ValidationResult,
)


@runtime_checkable
class IReceiptValidator(Protocol):
    """
    Validates receipts with one platform (App Store or Google Play).

    Business rejections (forged or malformed receipts) are returned as
    ValidationResult(valid=False). Transport failures are raised so the
    retry executor can decide whether to try again.
    """

    async def validate_receipt(
        self,
        receipt_data: str,
        product_id: str,
        transaction_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Args:
            receipt_data: Raw receipt payload from the client
            product_id: Product the client says it bought
            transaction_id: Client-reported platform transaction ID. When a
                receipt lists several purchases it selects which one is
                being claimed.
        """
        ...


@runtime_checkable
class ITransactionRecordStore(Protocol):
    """
    Persistence for processed purchases.

    insert_if_absent and mark_refunded must be atomic with respect to
    concurrent calls for the same transaction ID.
    """

    async def insert_if_absent(self, record: TransactionRecord) -> bool:
        """Store the record. Returns False if the transaction ID already exists."""
        ...

    async def get(self, transaction_id: str) -> Optional[TransactionRecord]:
        ...

    async def remove(self, transaction_id: str) -> None:
        """Release a claim whose ledger credit failed."""
        ...

    async def mark_refunded(self, transaction_id: str) -> bool:
        """Set refunded_at. Returns False if already refunded or unknown."""
        ...

    async def clear_refunded(self, transaction_id: str) -> None:
        """Undo mark_refunded after a failed clawback."""
        ...

    async def list_for_user(self, user_id: str) -> list[TransactionRecord]:
        """A user's purchases, most recent first."""
        ...


@runtime_checkable
class ISubscriptionStore(Protocol):
    """Persistence for subscriptions, keyed by subscription ID."""

    async def get_latest(self, user_id: str) -> Optional[Subscription]:
        """The user's most recently started subscription."""
        ...

    async def save(self, subscription: Subscription) -> None:
        """Insert or replace a subscription."""
        ...

    async def delete(self, subscription_id: str) -> None:
        ...

    async def list_for_user(self, user_id: str) -> list[Subscription]:
        """A user's subscriptions, most recently started first."""
        ...


@runtime_checkable
class ISubscriptionManager(Protocol):
    """Interface the API layer uses to read and cancel subscriptions."""

    async def get_active(self, user_id: str) -> Optional[Subscription]:
        ...

    async def get_overview(self, user_id: str) -> SubscriptionOverview:
        ...

    async def get_benefits(self, user_id: str) -> SubscriptionBenefits:
        ...

    async def cancel(self, user_id: str, reason: str) -> Subscription:
        """
        Stop renewal. Benefits continue until the paid period ends.

        Raises:
            NoActiveSubscriptionError
        """
        ...

    async def history(self, user_id: str) -> list[Subscription]:
        ...


@runtime_checkable
class IPurchaseProcessor(Protocol):
    """Interface the API layer uses to apply purchases and refunds."""

    def get_credit_packages(self) -> list[CreditPackage]:
        ...

    def get_subscription_plans(self) -> list[SubscriptionPlan]:
        ...

    async def get_purchase_history(self, user_id: str) -> list[TransactionRecord]:
        ...

    async def validate_receipt(
        self,
        platform: str,
        receipt_data: str,
        product_id: str,
        transaction_id: Optional[str] = None,
    ) -> ValidationResult:
        ...

    async def process_purchase(self, user_id: str, receipt: PurchaseReceipt) -> PurchaseResult:
        """
        Validate a receipt and credit the package or plan exactly once.

        A plan purchase also starts or renews the user's subscription.

        Raises:
            UnsupportedPlatformError, ReceiptValidationError,
            InvalidProductError, DuplicateTransactionError
        """
        ...

    async def process_refund(
        self,
        user_id: str,
        transaction_id: str,
        reason: str,
    ) -> RefundResult:
        """
        Claw back the credits granted by a purchase.

        Raises:
            TransactionNotFoundError, RefundAlreadyProcessedError,
            InsufficientCreditsForRefundError
        """
        ...
