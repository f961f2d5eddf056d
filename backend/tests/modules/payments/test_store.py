"""Tests for transaction-record storage and the product catalog."""

import asyncio
from unittest.mock import MagicMock

import pytest

from modules.payments import (
    CreditCatalog,
    CreditPackage,
    InMemoryTransactionRecordStore,
    ITransactionRecordStore,
    Platform,
    SupabaseTransactionRecordStore,
    TransactionRecord,
)


def record(transaction_id="tx1", user_id="user-1", credits=25):
    return TransactionRecord(
        transaction_id=transaction_id,
        user_id=user_id,
        product_id="credits_25",
        platform=Platform.IOS,
        credits_granted=credits,
    )


class TestInMemoryTransactionRecordStore:
    @pytest.fixture
    def store(self):
        return InMemoryTransactionRecordStore()

    def test_implements_interface(self, store):
        assert isinstance(store, ITransactionRecordStore)

    @pytest.mark.asyncio
    async def test_insert_once(self, store):
        assert await store.insert_if_absent(record()) is True
        assert await store.insert_if_absent(record()) is False
        assert (await store.get("tx1")).credits_granted == 25

    @pytest.mark.asyncio
    async def test_concurrent_inserts(self, store):
        results = await asyncio.gather(*(store.insert_if_absent(record()) for _ in range(5)))
        assert results.count(True) == 1

    @pytest.mark.asyncio
    async def test_remove(self, store):
        await store.insert_if_absent(record())
        await store.remove("tx1")
        assert await store.get("tx1") is None
        await store.remove("tx1")

    @pytest.mark.asyncio
    async def test_refund_claim(self, store):
        await store.insert_if_absent(record())

        assert await store.mark_refunded("tx1") is True
        assert await store.mark_refunded("tx1") is False
        assert (await store.get("tx1")).refunded is True

        await store.clear_refunded("tx1")
        assert (await store.get("tx1")).refunded is False

    @pytest.mark.asyncio
    async def test_mark_unknown(self, store):
        assert await store.mark_refunded("missing") is False

    @pytest.mark.asyncio
    async def test_list_for_user(self, store):
        await store.insert_if_absent(record("tx1"))
        await store.insert_if_absent(record("tx2"))
        await store.insert_if_absent(record("tx3", user_id="user-2"))

        records = await store.list_for_user("user-1")
        assert {r.transaction_id for r in records} == {"tx1", "tx2"}


class TestSupabaseTransactionRecordStore:
    @pytest.fixture
    def db(self):
        return MagicMock()

    @pytest.fixture
    def store(self, db):
        return SupabaseTransactionRecordStore(db)

    @pytest.mark.asyncio
    async def test_insert_uses_conflict_free_upsert(self, store, db):
        upsert = db.table.return_value.upsert
        upsert.return_value.execute.return_value.data = [{"transaction_id": "tx1"}]

        assert await store.insert_if_absent(record()) is True

        db.table.assert_called_with("purchase_records")
        row = upsert.call_args.args[0]
        assert row["platform"] == "ios"
        assert row["credits_granted"] == 25
        assert upsert.call_args.kwargs["on_conflict"] == "transaction_id"

    @pytest.mark.asyncio
    async def test_insert_existing(self, store, db):
        db.table.return_value.upsert.return_value.execute.return_value.data = []
        assert await store.insert_if_absent(record()) is False

    @pytest.mark.asyncio
    async def test_get_maps_row(self, store, db):
        db.table.return_value.select.return_value.eq.return_value.execute.return_value.data = [{
            "transaction_id": "tx1",
            "user_id": "user-1",
            "product_id": "credits_25",
            "platform": "android",
            "credits_granted": 25,
            "created_at": "2026-01-01T00:00:00Z",
            "refunded_at": None,
        }]

        found = await store.get("tx1")

        assert found.platform == Platform.ANDROID
        assert found.refunded is False

    @pytest.mark.asyncio
    async def test_mark_refunded_is_conditional(self, store, db):
        chain = db.table.return_value.update.return_value.eq.return_value.is_
        chain.return_value.execute.return_value.data = []

        assert await store.mark_refunded("tx1") is False
        chain.assert_called_once_with("refunded_at", "null")


class TestCreditCatalog:
    def test_lookup(self):
        catalog = CreditCatalog()
        assert catalog.get_package("credits_25").credits == 25
        assert catalog.get_package("credits_999") is None
        assert catalog.get_plan("premium_yearly").duration == "yearly"

    def test_single_popular_package(self):
        assert [p.id for p in CreditCatalog().packages if p.popular] == ["credits_25"]

    def test_custom_catalog(self):
        from decimal import Decimal

        catalog = CreditCatalog(
            packages=[CreditPackage(id="promo", name="Promo", credits=3, price=Decimal("0.99"))],
            plans=[],
        )
        assert [p.id for p in catalog.packages] == ["promo"]
        assert catalog.plans == []

    def test_packages_are_immutable(self):
        package = CreditCatalog().get_package("credits_10")
        with pytest.raises(Exception):
            package.credits = 1000
