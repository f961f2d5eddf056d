"""
Ledger storage backends.

Provides both in-memory (for testing and single-process deployments) and
Supabase-backed (for production) implementations of ILedgerStore.
"""

import asyncio
import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from supabase import Client

from shared.repository import BaseRepository

from .exceptions import (
    InsufficientCreditsError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from .models import CreditTransaction, TransactionType, UserAccount

logger = logging.getLogger(__name__)


class InMemoryLedgerStore:
    """
    Ledger store with in-memory storage.

    Each user's balance is guarded by its own asyncio.Lock so concurrent
    requests for the same user serialize, while different users proceed
    independently.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, UserAccount] = {}
        self._transactions: dict[str, list[CreditTransaction]] = {}
        self._by_id: dict[str, CreditTransaction] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._sequence = itertools.count(1)

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def create_account(self, user_id: str, initial_balance: int) -> UserAccount:
        async with self._lock_for(user_id):
            if user_id in self._accounts:
                raise UserAlreadyExistsError(user_id)
            account = UserAccount(user_id=user_id, balance=initial_balance)
            self._accounts[user_id] = account
            self._transactions[user_id] = []
            return account

    async def get_account(self, user_id: str) -> Optional[UserAccount]:
        return self._accounts.get(user_id)

    async def apply(self, draft: CreditTransaction, delta: int) -> CreditTransaction:
        user_id = draft.user_id
        async with self._lock_for(user_id):
            account = self._accounts.get(user_id)
            if account is None:
                raise UserNotFoundError(user_id)

            new_balance = account.balance + delta
            if new_balance < 0:
                raise InsufficientCreditsError(
                    required=-delta,
                    available=account.balance,
                    user_id=user_id,
                )

            stored = draft.model_copy(update={
                "created_at": datetime.now(timezone.utc),
                "sequence": next(self._sequence),
                "balance_before": account.balance,
                "balance_after": new_balance,
            })
            self._accounts[user_id] = account.model_copy(update={"balance": new_balance})
            self._transactions[user_id].append(stored)
            self._by_id[stored.id] = stored
            return stored

    async def list_transactions(self, user_id: str) -> list[CreditTransaction]:
        transactions = self._transactions.get(user_id, [])
        return sorted(transactions, key=lambda t: (t.created_at, t.sequence))

    async def get_transaction(self, transaction_id: str) -> Optional[CreditTransaction]:
        return self._by_id.get(transaction_id)


class SupabaseLedgerStore(BaseRepository[CreditTransaction]):
    """
    Ledger store with Supabase persistence.

    Balance changes go through the apply_credit_transaction RPC, which
    performs the conditional balance update and the transaction insert in
    a single Postgres statement (see migrations/001_credit_ledger.sql).
    """

    def __init__(self, db: Client) -> None:
        super().__init__(db)

    async def create_account(self, user_id: str, initial_balance: int) -> UserAccount:
        account = UserAccount(user_id=user_id, balance=initial_balance)
        result = self._execute(
            lambda: self._db.table("credit_accounts").upsert(
                {
                    "user_id": user_id,
                    "balance": initial_balance,
                    "created_at": account.created_at.isoformat(),
                },
                on_conflict="user_id",
                ignore_duplicates=True,
            ).execute()
        )
        # ignore_duplicates returns no row when the account already existed
        if not result.data:
            raise UserAlreadyExistsError(user_id)
        return account

    async def get_account(self, user_id: str) -> Optional[UserAccount]:
        result = self._execute(
            lambda: self._db.table("credit_accounts").select("*").eq(
                "user_id", user_id
            ).execute()
        )
        if not result.data:
            return None
        row = result.data[0]
        return UserAccount(
            user_id=row["user_id"],
            balance=row["balance"],
            created_at=_parse_timestamp(row["created_at"]),
        )

    async def apply(self, draft: CreditTransaction, delta: int) -> CreditTransaction:
        result = self._execute(
            lambda: self._db.rpc("apply_credit_transaction", {
                "p_id": draft.id,
                "p_user_id": draft.user_id,
                "p_type": draft.type.value,
                "p_amount": draft.amount,
                "p_delta": delta,
                "p_description": draft.description,
                "p_related_ids": draft.related_ids,
                "p_reference_id": draft.reference_id,
                "p_created_at": draft.created_at.isoformat(),
            }).execute()
        )
        if not result.data:
            raise UserNotFoundError(draft.user_id)

        row = result.data[0]
        if not row["applied"]:
            raise InsufficientCreditsError(
                required=-delta,
                available=row["balance_before"],
                user_id=draft.user_id,
            )

        return draft.model_copy(update={
            "sequence": row["sequence"],
            "balance_before": row["balance_before"],
            "balance_after": row["balance_after"],
        })

    async def list_transactions(self, user_id: str) -> list[CreditTransaction]:
        result = self._execute(
            lambda: self._db.table("credit_transactions").select("*").eq(
                "user_id", user_id
            ).order("created_at").order("sequence").execute()
        )
        return [self._map_to_transaction(r) for r in result.data]

    async def get_transaction(self, transaction_id: str) -> Optional[CreditTransaction]:
        result = self._execute(
            lambda: self._db.table("credit_transactions").select("*").eq(
                "id", transaction_id
            ).execute()
        )
        if not result.data:
            return None
        return self._map_to_transaction(result.data[0])

    def _map_to_transaction(self, row: dict[str, Any]) -> CreditTransaction:
        return CreditTransaction(
            id=row["id"],
            user_id=row["user_id"],
            type=TransactionType(row["type"]),
            amount=row["amount"],
            description=row["description"],
            related_ids=row.get("related_ids") or [],
            reference_id=row.get("reference_id"),
            created_at=_parse_timestamp(row["created_at"]),
            sequence=row["sequence"],
            balance_before=row["balance_before"],
            balance_after=row["balance_after"],
        )


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
