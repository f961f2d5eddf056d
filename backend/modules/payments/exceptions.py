"""
Payments module exceptions.

These exceptions are raised by the purchase processor and can be caught
by API error handlers to return appropriate HTTP responses. All of them
are terminal business failures except ReceiptServiceError, which wraps a
transport-level failure from a platform and may be retried.
"""

from typing import Optional

from shared.exceptions import ExternalServiceError, StickerError
from modules.errors.exceptions import ClassifiedServiceError
from modules.errors.models import ClassifiedError


class PaymentError(StickerError):
    """Base exception for payment-related errors."""

    status_code = 400
    category = "PAYMENT"
    user_message = (
        "There was an issue processing your payment. Please try again "
        "or contact support."
    )


class UnsupportedPlatformError(PaymentError):
    """Raised when a receipt comes from a platform we don't support."""

    def __init__(self, platform: str):
        super().__init__(
            f"Unsupported payment platform: {platform}",
            code="UNSUPPORTED_PLATFORM",
            details={"platform": platform},
        )


class InvalidProductError(PaymentError):
    """Raised when a product ID is not in the catalog."""

    user_message = "This product is no longer available."

    def __init__(self, product_id: str):
        super().__init__(
            f"Invalid product ID: {product_id}",
            code="INVALID_PRODUCT",
            details={"product_id": product_id},
        )


class DuplicateTransactionError(PaymentError):
    """Raised when attempting to process a duplicate transaction."""

    status_code = 409
    user_message = "This purchase has already been applied to your account."

    def __init__(self, transaction_id: str):
        super().__init__(
            f"Transaction already processed: {transaction_id}",
            code="DUPLICATE_TRANSACTION",
            details={"transaction_id": transaction_id},
        )


class TransactionNotFoundError(PaymentError):
    """Raised when a refund references an unknown purchase."""

    status_code = 404
    user_message = "We couldn't find that purchase."

    def __init__(self, transaction_id: str):
        super().__init__(
            f"Original transaction not found: {transaction_id}",
            code="TRANSACTION_NOT_FOUND",
            details={"transaction_id": transaction_id},
        )


class RefundAlreadyProcessedError(PaymentError):
    """Raised when a purchase has already been refunded."""

    status_code = 409
    user_message = "This purchase has already been refunded."

    def __init__(self, transaction_id: str):
        super().__init__(
            f"Transaction already refunded: {transaction_id}",
            code="REFUND_ALREADY_PROCESSED",
            details={"transaction_id": transaction_id},
        )


class InsufficientCreditsForRefundError(PaymentError):
    """Raised when the user holds fewer credits than the refund would claw back."""

    status_code = 402
    user_message = "This purchase can't be refunded because its credits have been used."

    def __init__(self, transaction_id: str, required: int, available: int):
        super().__init__(
            "User does not have enough credits for refund",
            code="INSUFFICIENT_CREDITS_FOR_REFUND",
            details={
                "transaction_id": transaction_id,
                "required": required,
                "available": available,
            },
        )


class NoActiveSubscriptionError(PaymentError):
    """Raised when a subscription operation needs a current subscription."""

    status_code = 404
    user_message = "You don't have an active subscription."

    def __init__(self, user_id: str):
        super().__init__(
            f"No active subscription for user {user_id}",
            code="NO_ACTIVE_SUBSCRIPTION",
            details={"user_id": user_id},
        )


class ReceiptValidationError(ClassifiedServiceError):
    """Raised when a receipt fails validation. Carries the classified cause unchanged."""

    def __init__(self, error: ClassifiedError):
        super().__init__(error)


class ReceiptServiceError(ExternalServiceError):
    """Transport-level failure talking to a platform's receipt API."""

    def __init__(
        self,
        message: str,
        platform: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(
            message,
            service=f"{platform}_receipts",
            code=code or "RECEIPT_SERVICE_ERROR",
            status=status,
        )
