"""
Credit ledger service.

Sole owner of balance mutation and transaction history. Storage is
injected, so the same service runs against the in-memory store in tests
and the Supabase store in production.
"""

import logging
from typing import Optional

from shared.config import get_settings

from .exceptions import InsufficientCreditsError, InvalidAmountError, UserNotFoundError
from .interfaces import ICreditLedger, ILedgerStore
from .models import (
    CreditTransaction,
    CreditValidation,
    LedgerResult,
    TransactionType,
    UserAccount,
)

logger = logging.getLogger(__name__)

_DEBIT_TYPES = {TransactionType.CONSUMPTION, TransactionType.REFUND}
_CREDIT_TYPES = {TransactionType.PURCHASE, TransactionType.REFUND}


class CreditLedger(ICreditLedger):
    """Credit ledger backed by an injected ILedgerStore."""

    def __init__(self, store: ILedgerStore, initial_credits: Optional[int] = None):
        """
        Initialize the ledger.

        Args:
            store: Storage backend for balances and transactions
            initial_credits: Starting grant for new users. Defaults to
                             Settings.initial_credits.
        """
        self._store = store
        self._initial_credits = (
            initial_credits if initial_credits is not None else get_settings().initial_credits
        )

    async def register_user(
        self,
        user_id: str,
        initial_credits: Optional[int] = None,
    ) -> UserAccount:
        """Create a ledger account with the starting grant."""
        grant = self._initial_credits if initial_credits is None else initial_credits
        if grant < 0:
            raise InvalidAmountError(grant, "Initial credits cannot be negative")

        account = await self._store.create_account(user_id, grant)
        logger.info(f"Registered user {user_id} with {grant} credits")
        return account

    async def check_balance(self, user_id: str) -> int:
        """Get user's current credit balance."""
        account = await self._store.get_account(user_id)
        if account is None:
            raise UserNotFoundError(user_id)
        return account.balance

    async def validate_credits(self, user_id: str, required: int) -> CreditValidation:
        """Check if user has enough credits without reserving them."""
        balance = await self.check_balance(user_id)
        valid = balance >= required
        return CreditValidation(
            valid=valid,
            current_balance=balance,
            message=None if valid else (
                f"Insufficient credits. Required: {required}, Available: {balance}"
            ),
        )

    async def debit(
        self,
        user_id: str,
        amount: int,
        description: str,
        related_ids: Optional[list[str]] = None,
        transaction_type: TransactionType = TransactionType.CONSUMPTION,
        reference_id: Optional[str] = None,
    ) -> LedgerResult:
        """Deduct credits from user's balance."""
        if amount <= 0:
            raise InvalidAmountError(amount, "Amount must be positive")
        if transaction_type not in _DEBIT_TYPES:
            raise InvalidAmountError(amount, f"Cannot debit a {transaction_type.value} transaction")

        draft = CreditTransaction(
            user_id=user_id,
            type=transaction_type,
            amount=amount,
            description=description,
            related_ids=related_ids or [],
            reference_id=reference_id,
        )
        try:
            transaction = await self._store.apply(draft, -amount)
        except InsufficientCreditsError:
            logger.info(f"Debit of {amount} refused for {user_id}: insufficient credits")
            raise

        logger.info(
            f"Debited {amount} credits from {user_id} "
            f"({transaction_type.value}), balance {transaction.balance_after}"
        )
        return LedgerResult(new_balance=transaction.balance_after, transaction=transaction)

    async def credit(
        self,
        user_id: str,
        amount: int,
        description: str,
        related_ids: Optional[list[str]] = None,
        transaction_type: TransactionType = TransactionType.PURCHASE,
        reference_id: Optional[str] = None,
    ) -> LedgerResult:
        """Add credits to user's balance."""
        if amount <= 0:
            raise InvalidAmountError(amount, "Amount must be positive")
        if transaction_type not in _CREDIT_TYPES:
            raise InvalidAmountError(amount, f"Cannot credit a {transaction_type.value} transaction")

        draft = CreditTransaction(
            user_id=user_id,
            type=transaction_type,
            amount=amount,
            description=description,
            related_ids=related_ids or [],
            reference_id=reference_id,
        )
        transaction = await self._store.apply(draft, amount)

        logger.info(
            f"Credited {amount} credits to {user_id} "
            f"({transaction_type.value}), balance {transaction.balance_after}"
        )
        return LedgerResult(new_balance=transaction.balance_after, transaction=transaction)

    async def history(
        self,
        user_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[CreditTransaction]:
        """Get user's transaction history, oldest first."""
        transactions = await self._store.list_transactions(user_id)
        if limit is None:
            return transactions[offset:]
        return transactions[offset : offset + limit]

    async def get_transaction(self, transaction_id: str) -> Optional[CreditTransaction]:
        """Get a single transaction by ID."""
        return await self._store.get_transaction(transaction_id)

    async def total_consumed(self, user_id: str) -> int:
        """Total credits spent on generations."""
        transactions = await self._store.list_transactions(user_id)
        return sum(t.amount for t in transactions if t.type == TransactionType.CONSUMPTION)

    async def total_purchased(self, user_id: str) -> int:
        """Total credits bought."""
        transactions = await self._store.list_transactions(user_id)
        return sum(t.amount for t in transactions if t.type == TransactionType.PURCHASE)
