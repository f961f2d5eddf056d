"""
Credit ledger exceptions.

These exceptions are raised by the ledger module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Optional

from shared.exceptions import NotFoundError, StickerError, ValidationError


class LedgerError(StickerError):
    """Base exception for ledger-related errors."""

    pass


class InsufficientCreditsError(LedgerError):
    """
    Raised when a user doesn't have enough credits for an operation.

    This is a common error that the UI should handle gracefully
    by prompting the user to purchase more credits.
    """

    status_code = 402
    category = "INSUFFICIENT_CREDITS"
    user_message = (
        "You don't have enough credits to create a sticker. "
        "Purchase more credits to continue."
    )

    def __init__(
        self,
        required: int,
        available: int,
        user_id: Optional[str] = None,
    ):
        super().__init__(
            f"Insufficient credits. Required: {required}, available: {available}",
            code="INSUFFICIENT_CREDITS",
            details={
                "required": required,
                "available": available,
                "shortfall": required - available,
            },
        )
        self.required = required
        self.available = available
        if user_id:
            self.details["user_id"] = user_id


class InvalidAmountError(ValidationError):
    """Raised when a credit amount is invalid."""

    def __init__(self, amount: int, reason: str):
        super().__init__(
            f"Invalid amount: {amount}. {reason}",
            code="INVALID_AMOUNT",
            details={"amount": amount, "reason": reason},
        )


class UserNotFoundError(NotFoundError):
    """Raised when a user has no ledger account."""

    def __init__(self, user_id: str):
        super().__init__(
            f"User not found: {user_id}",
            code="USER_NOT_FOUND",
            details={"user_id": user_id},
        )


class UserAlreadyExistsError(ValidationError):
    """Raised when registering a user that already has an account."""

    status_code = 409

    def __init__(self, user_id: str):
        super().__init__(
            f"User already registered: {user_id}",
            code="USER_ALREADY_EXISTS",
            details={"user_id": user_id},
        )
