"""
Transaction-record and subscription storage backends.

The record table is the idempotency index for purchases: inserting a
transaction ID twice must fail atomically, and a refund may claim a
record only once. Subscriptions are plain rows keyed by ID; the
SubscriptionManager serializes changes per user.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from supabase import Client

from shared.repository import BaseRepository

from .models import Platform, Subscription, SubscriptionStatus, TransactionRecord

logger = logging.getLogger(__name__)


class InMemoryTransactionRecordStore:
    """Record store with in-memory storage, guarded by a single asyncio.Lock."""

    def __init__(self) -> None:
        self._records: dict[str, TransactionRecord] = {}
        self._lock = asyncio.Lock()

    async def insert_if_absent(self, record: TransactionRecord) -> bool:
        async with self._lock:
            if record.transaction_id in self._records:
                return False
            self._records[record.transaction_id] = record
            return True

    async def get(self, transaction_id: str) -> Optional[TransactionRecord]:
        return self._records.get(transaction_id)

    async def remove(self, transaction_id: str) -> None:
        async with self._lock:
            self._records.pop(transaction_id, None)

    async def mark_refunded(self, transaction_id: str) -> bool:
        async with self._lock:
            record = self._records.get(transaction_id)
            if record is None or record.refunded:
                return False
            self._records[transaction_id] = record.model_copy(
                update={"refunded_at": datetime.now(timezone.utc)}
            )
            return True

    async def clear_refunded(self, transaction_id: str) -> None:
        async with self._lock:
            record = self._records.get(transaction_id)
            if record is not None:
                self._records[transaction_id] = record.model_copy(update={"refunded_at": None})

    async def list_for_user(self, user_id: str) -> list[TransactionRecord]:
        records = [r for r in self._records.values() if r.user_id == user_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)


class SupabaseTransactionRecordStore(BaseRepository[TransactionRecord]):
    """
    Record store with Supabase persistence.

    transaction_id is the primary key of purchase_records, so the database
    enforces single insertion. Refund claims use a conditional update on
    refunded_at IS NULL.
    """

    def __init__(self, db: Client) -> None:
        super().__init__(db)

    async def insert_if_absent(self, record: TransactionRecord) -> bool:
        result = self._execute(
            lambda: self._db.table("purchase_records").upsert(
                self._map_to_row(record),
                on_conflict="transaction_id",
                ignore_duplicates=True,
            ).execute()
        )
        inserted = bool(result.data)
        if not inserted:
            logger.info(f"Purchase record {record.transaction_id} already exists")
        return inserted

    async def get(self, transaction_id: str) -> Optional[TransactionRecord]:
        result = self._execute(
            lambda: self._db.table("purchase_records").select("*").eq(
                "transaction_id", transaction_id
            ).execute()
        )
        if not result.data:
            return None
        return self._map_to_record(result.data[0])

    async def remove(self, transaction_id: str) -> None:
        self._execute(
            lambda: self._db.table("purchase_records").delete().eq(
                "transaction_id", transaction_id
            ).execute()
        )

    async def mark_refunded(self, transaction_id: str) -> bool:
        refunded_at = datetime.now(timezone.utc).isoformat()
        result = self._execute(
            lambda: self._db.table("purchase_records").update(
                {"refunded_at": refunded_at}
            ).eq("transaction_id", transaction_id).is_("refunded_at", "null").execute()
        )
        return bool(result.data)

    async def clear_refunded(self, transaction_id: str) -> None:
        self._execute(
            lambda: self._db.table("purchase_records").update(
                {"refunded_at": None}
            ).eq("transaction_id", transaction_id).execute()
        )

    async def list_for_user(self, user_id: str) -> list[TransactionRecord]:
        result = self._execute(
            lambda: self._db.table("purchase_records").select("*").eq(
                "user_id", user_id
            ).order("created_at", desc=True).execute()
        )
        return [self._map_to_record(r) for r in result.data]

    def _map_to_row(self, record: TransactionRecord) -> dict[str, Any]:
        return {
            "transaction_id": record.transaction_id,
            "user_id": record.user_id,
            "product_id": record.product_id,
            "platform": record.platform.value,
            "credits_granted": record.credits_granted,
            "created_at": record.created_at.isoformat(),
            "refunded_at": record.refunded_at.isoformat() if record.refunded_at else None,
        }

    def _map_to_record(self, row: dict[str, Any]) -> TransactionRecord:
        refunded_at = row.get("refunded_at")
        return TransactionRecord(
            transaction_id=row["transaction_id"],
            user_id=row["user_id"],
            product_id=row["product_id"],
            platform=Platform(row["platform"]),
            credits_granted=row["credits_granted"],
            created_at=datetime.fromisoformat(row["created_at"].replace("Z", "+00:00")),
            refunded_at=(
                datetime.fromisoformat(refunded_at.replace("Z", "+00:00"))
                if refunded_at else None
            ),
        )


class InMemorySubscriptionStore:
    """Subscription store with in-memory storage."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}

    async def get_latest(self, user_id: str) -> Optional[Subscription]:
        subscriptions = await self.list_for_user(user_id)
        return subscriptions[0] if subscriptions else None

    async def save(self, subscription: Subscription) -> None:
        self._subscriptions[subscription.id] = subscription

    async def delete(self, subscription_id: str) -> None:
        self._subscriptions.pop(subscription_id, None)

    async def list_for_user(self, user_id: str) -> list[Subscription]:
        subscriptions = [s for s in self._subscriptions.values() if s.user_id == user_id]
        return sorted(subscriptions, key=lambda s: s.start_date, reverse=True)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class SupabaseSubscriptionStore(BaseRepository[Subscription]):
    """Subscription store with Supabase persistence."""

    def __init__(self, db: Client) -> None:
        super().__init__(db)

    async def get_latest(self, user_id: str) -> Optional[Subscription]:
        result = self._execute(
            lambda: self._db.table("subscriptions").select("*").eq(
                "user_id", user_id
            ).order("start_date", desc=True).limit(1).execute()
        )
        if not result.data:
            return None
        return self._map_to_subscription(result.data[0])

    async def save(self, subscription: Subscription) -> None:
        self._execute(
            lambda: self._db.table("subscriptions").upsert(
                self._map_to_row(subscription),
                on_conflict="id",
            ).execute()
        )

    async def delete(self, subscription_id: str) -> None:
        self._execute(
            lambda: self._db.table("subscriptions").delete().eq(
                "id", subscription_id
            ).execute()
        )

    async def list_for_user(self, user_id: str) -> list[Subscription]:
        result = self._execute(
            lambda: self._db.table("subscriptions").select("*").eq(
                "user_id", user_id
            ).order("start_date", desc=True).execute()
        )
        return [self._map_to_subscription(r) for r in result.data]

    def _map_to_row(self, subscription: Subscription) -> dict[str, Any]:
        return {
            "id": subscription.id,
            "user_id": subscription.user_id,
            "plan_id": subscription.plan_id,
            "status": subscription.status.value,
            "start_date": subscription.start_date.isoformat(),
            "end_date": subscription.end_date.isoformat(),
            "auto_renew": subscription.auto_renew,
            "last_transaction_id": subscription.last_transaction_id,
            "last_payment_date": subscription.last_payment_date.isoformat(),
            "canceled_at": (
                subscription.canceled_at.isoformat() if subscription.canceled_at else None
            ),
            "cancel_reason": subscription.cancel_reason,
        }

    def _map_to_subscription(self, row: dict[str, Any]) -> Subscription:
        return Subscription(
            id=row["id"],
            user_id=row["user_id"],
            plan_id=row["plan_id"],
            status=SubscriptionStatus(row["status"]),
            start_date=_parse_timestamp(row["start_date"]),
            end_date=_parse_timestamp(row["end_date"]),
            auto_renew=row.get("auto_renew", True),
            last_transaction_id=row["last_transaction_id"],
            last_payment_date=_parse_timestamp(row["last_payment_date"]),
            canceled_at=_parse_timestamp(row.get("canceled_at")),
            cancel_reason=row.get("cancel_reason"),
        )
