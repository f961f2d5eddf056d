"""
Credit ledger interfaces.

Other modules should depend on ICreditLedger, not the concrete implementation.
This enables the payments and generation modules to move credits without
knowing how balances are stored.
"""

from typing import Optional, Protocol, runtime_checkable

from .models import (
    CreditTransaction,
    CreditValidation,
    LedgerResult,
    TransactionType,
    UserAccount,
)


@runtime_checkable
class ILedgerStore(Protocol):
    """
    Persistence contract for balances and the transaction log.

    Implementations must make apply() atomic per user: the balance read,
    the floor check, the balance write and the transaction append happen
    as one step with respect to other apply() calls for the same user.
    """

    async def create_account(self, user_id: str, initial_balance: int) -> UserAccount:
        """
        Create an account.

        Raises:
            UserAlreadyExistsError: If the account exists
        """
        ...

    async def get_account(self, user_id: str) -> Optional[UserAccount]:
        """Return the account, or None if unknown."""
        ...

    async def apply(self, draft: CreditTransaction, delta: int) -> CreditTransaction:
        """
        Atomically apply a signed balance change and append the transaction.

        Args:
            draft: Transaction to record (balances and sequence are filled in)
            delta: Signed change to the balance

        Returns:
            The stored transaction with balance_before/after and sequence set

        Raises:
            UserNotFoundError: If the user has no account
            InsufficientCreditsError: If the balance would go negative;
                nothing is written in that case
        """
        ...

    async def list_transactions(self, user_id: str) -> list[CreditTransaction]:
        """All of a user's transactions ordered by (created_at, sequence)."""
        ...

    async def get_transaction(self, transaction_id: str) -> Optional[CreditTransaction]:
        """Look up a single transaction by ID."""
        ...


@runtime_checkable
class ICreditLedger(Protocol):
    """
    Interface for credit balance operations.

    The ledger is the sole owner of balance mutation; no other component
    changes a balance directly.
    """

    async def register_user(
        self,
        user_id: str,
        initial_credits: Optional[int] = None,
    ) -> UserAccount:
        """
        Create a ledger account with the starting grant.

        Raises:
            UserAlreadyExistsError: If the user is already registered
        """
        ...

    async def check_balance(self, user_id: str) -> int:
        """
        Get a user's current balance.

        Raises:
            UserNotFoundError: If the user is unknown
        """
        ...

    async def debit(
        self,
        user_id: str,
        amount: int,
        description: str,
        related_ids: Optional[list[str]] = None,
        transaction_type: TransactionType = TransactionType.CONSUMPTION,
        reference_id: Optional[str] = None,
    ) -> LedgerResult:
        """
        Remove credits from a user's balance.

        Raises:
            InsufficientCreditsError: If balance < amount (balance unchanged)
            InvalidAmountError: If amount <= 0
            UserNotFoundError: If the user is unknown
        """
        ...

    async def credit(
        self,
        user_id: str,
        amount: int,
        description: str,
        related_ids: Optional[list[str]] = None,
        transaction_type: TransactionType = TransactionType.PURCHASE,
        reference_id: Optional[str] = None,
    ) -> LedgerResult:
        """
        Add credits to a user's balance.

        Raises:
            InvalidAmountError: If amount <= 0
            UserNotFoundError: If the user is unknown
        """
        ...

    async def history(
        self,
        user_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[CreditTransaction]:
        """A user's transactions in insertion order (oldest first)."""
        ...

    async def validate_credits(self, user_id: str, required: int) -> CreditValidation:
        """Non-reserving affordability check."""
        ...
