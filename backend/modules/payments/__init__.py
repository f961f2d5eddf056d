"""
Payments module.

Validates platform purchase receipts and applies them to the credit
ledger exactly once per transaction ID. Also handles refunds and the
subscription lifecycle.

Public API:
- IPurchaseProcessor: Interface used by the API layer
- PurchaseProcessor: Purchase and refund service
- CreditCatalog: Static credit packages and subscription plans
- ISubscriptionManager / SubscriptionManager: Start, renew and cancel subscriptions
- AppStoreReceiptValidator / GooglePlayReceiptValidator: Platform validators
- InMemoryTransactionRecordStore / SupabaseTransactionRecordStore: Record stores
- InMemorySubscriptionStore / SupabaseSubscriptionStore: Subscription stores
"""

from .interfaces import (
    IPurchaseProcessor,
    IReceiptValidator,
    ISubscriptionManager,
    ISubscriptionStore,
    ITransactionRecordStore,
)
from .models import (
    CancelSubscriptionRequest,
    CreditPackage,
    Platform,
    PurchaseReceipt,
    PurchaseResult,
    RefundRequest,
    RefundResult,
    Subscription,
    SubscriptionBenefits,
    SubscriptionOverview,
    SubscriptionPlan,
    SubscriptionStatus,
    TransactionRecord,
    ValidationResult,
)
from .exceptions import (
    PaymentError,
    UnsupportedPlatformError,
    InvalidProductError,
    DuplicateTransactionError,
    TransactionNotFoundError,
    RefundAlreadyProcessedError,
    InsufficientCreditsForRefundError,
    NoActiveSubscriptionError,
    ReceiptValidationError,
    ReceiptServiceError,
)
from .catalog import CreditCatalog, DEFAULT_CREDIT_PACKAGES, DEFAULT_SUBSCRIPTION_PLANS
from .store import (
    InMemorySubscriptionStore,
    InMemoryTransactionRecordStore,
    SupabaseSubscriptionStore,
    SupabaseTransactionRecordStore,
)
from .subscriptions import SubscriptionManager
from .validators import AppStoreReceiptValidator, GooglePlayReceiptValidator
from .service import PurchaseProcessor

__all__ = [
    # Interfaces
    "IPurchaseProcessor",
    "IReceiptValidator",
    "ISubscriptionManager",
    "ISubscriptionStore",
    "ITransactionRecordStore",
    # Models
    "CancelSubscriptionRequest",
    "CreditPackage",
    "Platform",
    "PurchaseReceipt",
    "PurchaseResult",
    "RefundRequest",
    "RefundResult",
    "Subscription",
    "SubscriptionBenefits",
    "SubscriptionOverview",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "TransactionRecord",
    "ValidationResult",
    # Exceptions
    "PaymentError",
    "UnsupportedPlatformError",
    "InvalidProductError",
    "DuplicateTransactionError",
    "TransactionNotFoundError",
    "RefundAlreadyProcessedError",
    "InsufficientCreditsForRefundError",
    "NoActiveSubscriptionError",
    "ReceiptValidationError",
    "ReceiptServiceError",
    # Catalog
    "CreditCatalog",
    "DEFAULT_CREDIT_PACKAGES",
    "DEFAULT_SUBSCRIPTION_PLANS",
    # Storage
    "InMemoryTransactionRecordStore",
    "SupabaseTransactionRecordStore",
    "InMemorySubscriptionStore",
    "SupabaseSubscriptionStore",
    # Validators
    "AppStoreReceiptValidator",
    "GooglePlayReceiptValidator",
    # Services
    "PurchaseProcessor",
    "SubscriptionManager",
]
