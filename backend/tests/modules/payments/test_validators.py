"""Tests for the platform receipt validators."""

import json

import httpx
import pytest

from modules.payments import (
    AppStoreReceiptValidator,
    GooglePlayReceiptValidator,
    IReceiptValidator,
    ReceiptServiceError,
)


class Recorder:
    """MockTransport handler that replays queued responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def apple_ok(product_id="credits_25", transaction_id="1000000001"):
    return httpx.Response(200, json={
        "status": 0,
        "receipt": {
            "in_app": [{
                "product_id": product_id,
                "transaction_id": transaction_id,
                "purchase_date_ms": "1767225600000",
            }],
        },
    })


def apple_repeat_purchases():
    return httpx.Response(200, json={
        "status": 0,
        "receipt": {
            "in_app": [
                {"product_id": "credits_25", "transaction_id": "A1",
                 "purchase_date_ms": "1767225600000"},
                {"product_id": "credits_10", "transaction_id": "B1",
                 "purchase_date_ms": "1767312000000"},
                {"product_id": "credits_25", "transaction_id": "A2",
                 "purchase_date_ms": "1767398400000"},
            ],
        },
    })


class TestAppStoreReceiptValidator:
    def make(self, recorder, **kwargs):
        kwargs.setdefault("shared_secret", "secret")
        kwargs.setdefault("use_sandbox", False)
        return AppStoreReceiptValidator(transport=recorder.transport, **kwargs)

    def test_implements_interface(self):
        assert isinstance(AppStoreReceiptValidator(), IReceiptValidator)

    @pytest.mark.asyncio
    async def test_valid_receipt(self):
        recorder = Recorder(apple_ok())
        result = await self.make(recorder).validate_receipt("blob", "credits_25")

        assert result.valid is True
        assert result.product_id == "credits_25"
        assert result.transaction_id == "1000000001"
        assert result.purchase_date.year == 2026

        request = recorder.requests[0]
        assert str(request.url) == AppStoreReceiptValidator.PRODUCTION_URL
        body = json.loads(request.content)
        assert body["receipt-data"] == "blob"
        assert body["password"] == "secret"

    @pytest.mark.asyncio
    async def test_sandbox_receipt_falls_back(self):
        recorder = Recorder(httpx.Response(200, json={"status": 21007}), apple_ok())
        result = await self.make(recorder).validate_receipt("blob", "credits_25")

        assert result.valid is True
        assert [str(r.url) for r in recorder.requests] == [
            AppStoreReceiptValidator.PRODUCTION_URL,
            AppStoreReceiptValidator.SANDBOX_URL,
        ]

    @pytest.mark.asyncio
    async def test_sandbox_mode(self):
        recorder = Recorder(apple_ok())
        await self.make(recorder, use_sandbox=True).validate_receipt("blob", "credits_25")
        assert str(recorder.requests[0].url) == AppStoreReceiptValidator.SANDBOX_URL

    @pytest.mark.asyncio
    async def test_rejected_status(self):
        recorder = Recorder(httpx.Response(200, json={"status": 21003}))
        result = await self.make(recorder).validate_receipt("blob", "credits_25")

        assert result.valid is False
        assert result.error.code == "INVALID_RECEIPT"
        assert result.error.retryable is False

    @pytest.mark.asyncio
    async def test_product_missing_from_receipt(self):
        recorder = Recorder(apple_ok(product_id="credits_10"))
        result = await self.make(recorder).validate_receipt("blob", "credits_25")
        assert result.valid is False
        assert "credits_25" in result.error.message

    @pytest.mark.asyncio
    async def test_repeat_purchase_selects_claimed_transaction(self):
        recorder = Recorder(apple_repeat_purchases(), apple_repeat_purchases())
        validator = self.make(recorder)

        first = await validator.validate_receipt("blob", "credits_25", transaction_id="A1")
        second = await validator.validate_receipt("blob", "credits_25", transaction_id="A2")

        assert first.transaction_id == "A1"
        assert second.transaction_id == "A2"
        assert second.purchase_date > first.purchase_date

    @pytest.mark.asyncio
    async def test_repeat_purchase_defaults_to_newest(self):
        recorder = Recorder(apple_repeat_purchases())
        result = await self.make(recorder).validate_receipt("blob", "credits_25")
        assert result.valid is True
        assert result.transaction_id == "A2"

    @pytest.mark.asyncio
    async def test_unknown_transaction_rejected(self):
        recorder = Recorder(apple_repeat_purchases())
        result = await self.make(recorder).validate_receipt(
            "blob", "credits_25", transaction_id="A3"
        )
        assert result.valid is False
        assert result.error.code == "INVALID_RECEIPT"
        assert "A3" in result.error.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [21005, 21009, 21150])
    async def test_temporary_apple_status_raises(self, status):
        recorder = Recorder(httpx.Response(200, json={"status": status}))
        with pytest.raises(ReceiptServiceError) as exc_info:
            await self.make(recorder).validate_receipt("blob", "credits_25")
        assert exc_info.value.status == 503

    @pytest.mark.asyncio
    async def test_http_server_error_raises(self):
        recorder = Recorder(httpx.Response(502))
        with pytest.raises(ReceiptServiceError) as exc_info:
            await self.make(recorder).validate_receipt("blob", "credits_25")
        assert exc_info.value.status == 502


class TestGooglePlayReceiptValidator:
    def make(self, recorder, **kwargs):
        kwargs.setdefault("package_name", "com.example.stickers")
        kwargs.setdefault("access_token", "token")
        return GooglePlayReceiptValidator(transport=recorder.transport, **kwargs)

    @staticmethod
    def purchase(token="purchase-token"):
        return json.dumps({"purchaseToken": token, "orderId": "GPA.1", "purchaseTime": 1767225600000})

    @pytest.mark.asyncio
    async def test_valid_purchase(self):
        recorder = Recorder(httpx.Response(200, json={
            "purchaseState": 0,
            "orderId": "GPA.1234",
            "purchaseTimeMillis": "1767225600000",
        }))
        result = await self.make(recorder).validate_receipt(self.purchase(), "credits_25")

        assert result.valid is True
        assert result.transaction_id == "GPA.1234"

        request = recorder.requests[0]
        assert request.headers["Authorization"] == "Bearer token"
        assert "com.example.stickers/purchases/products/credits_25/tokens/purchase-token" in str(request.url)

    @pytest.mark.asyncio
    async def test_cancelled_purchase(self):
        recorder = Recorder(httpx.Response(200, json={"purchaseState": 1}))
        result = await self.make(recorder).validate_receipt(self.purchase(), "credits_25")
        assert result.valid is False
        assert result.error.code == "CANCELLED"

    @pytest.mark.asyncio
    async def test_pending_purchase(self):
        recorder = Recorder(httpx.Response(200, json={"purchaseState": 2}))
        result = await self.make(recorder).validate_receipt(self.purchase(), "credits_25")
        assert result.valid is False
        assert result.error.code == "INVALID_RECEIPT"

    @pytest.mark.asyncio
    async def test_unknown_token(self):
        recorder = Recorder(httpx.Response(404))
        result = await self.make(recorder).validate_receipt(self.purchase(), "credits_25")
        assert result.valid is False

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        recorder = Recorder(httpx.Response(503))
        with pytest.raises(ReceiptServiceError):
            await self.make(recorder).validate_receipt(self.purchase(), "credits_25")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", ["not json", json.dumps({"orderId": "x"}), "[]"])
    async def test_malformed_receipt(self, payload):
        recorder = Recorder()
        result = await self.make(recorder).validate_receipt(payload, "credits_25")
        assert result.valid is False
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        recorder = Recorder()
        validator = GooglePlayReceiptValidator(
            package_name="", access_token="", transport=recorder.transport
        )
        result = await validator.validate_receipt(self.purchase(), "credits_25")
        assert result.valid is False
        assert recorder.requests == []
