"""
Credit ledger data models.

These models define the data structures used by the ledger module
and exposed to other modules through the interface.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    """Types of credit transactions."""

    PURCHASE = "purchase"        # User bought credits
    CONSUMPTION = "consumption"  # Credits spent on a sticker generation
    REFUND = "refund"            # Credits returned, or clawed back for a refunded purchase


def generate_transaction_id() -> str:
    """Generate a unique ledger transaction ID."""
    return f"txn_{uuid.uuid4().hex}"


class UserAccount(BaseModel):
    """A user's ledger account."""

    user_id: str = Field(..., description="User ID")
    balance: int = Field(..., ge=0, description="Current credit balance")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the account was registered",
    )


class CreditTransaction(BaseModel):
    """
    An immutable credit transaction record.

    Amounts are always positive magnitudes. The signed effect on the
    balance is captured by balance_before/balance_after.
    """

    id: str = Field(default_factory=generate_transaction_id, description="Transaction ID")
    user_id: str = Field(..., description="User ID")
    type: TransactionType = Field(..., description="Transaction type")
    amount: int = Field(..., gt=0, description="Credit amount (positive magnitude)")
    description: str = Field(..., description="Human-readable description")
    related_ids: list[str] = Field(
        default_factory=list,
        description="Related artifact IDs (e.g., sticker IDs)",
    )
    reference_id: Optional[str] = Field(
        None,
        description="External reference (e.g., platform transaction ID)",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Transaction timestamp",
    )
    sequence: int = Field(default=0, description="Insertion sequence number (set by the store)")
    balance_before: int = Field(default=0, description="Balance before transaction")
    balance_after: int = Field(default=0, description="Balance after transaction")

    model_config = {"frozen": True}

    @property
    def balance_effect(self) -> int:
        """Signed change this transaction made to the balance."""
        return self.balance_after - self.balance_before


class LedgerResult(BaseModel):
    """Result of a successful debit or credit."""

    success: bool = Field(default=True)
    new_balance: int = Field(..., description="Balance after the operation")
    transaction: CreditTransaction = Field(..., description="Recorded transaction")


class CreditValidation(BaseModel):
    """Result of checking whether a user can afford an operation."""

    valid: bool = Field(..., description="Whether the user has enough credits")
    current_balance: int = Field(..., description="Current balance")
    message: Optional[str] = Field(None, description="Explanation when invalid")


class BalanceResponse(BaseModel):
    """API response for balance queries."""

    user_id: str
    balance: int


class TransactionListResponse(BaseModel):
    """API response for transaction history."""

    transactions: list[CreditTransaction] = Field(..., description="Transaction list")
    total: int = Field(..., description="Total transaction count")
    has_more: bool = Field(..., description="Whether more transactions exist")


class ValidateCreditsRequest(BaseModel):
    """Request to check affordability of an operation."""

    required_credits: int = Field(..., gt=0, description="Credits the operation needs")
