"""
Platform receipt validators.

AppStoreReceiptValidator talks to Apple's verifyReceipt endpoint and
GooglePlayReceiptValidator to the Android Publisher API. Both return
ValidationResult(valid=False) for receipts the platform rejects and raise
ReceiptServiceError (or let httpx transport errors escape) when the
platform itself is unavailable, so the caller's retry policy can tell the
two apart.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from shared.config import get_settings
from modules.errors.classifier import categorize

from .exceptions import ReceiptServiceError
from .models import ValidationResult

logger = logging.getLogger(__name__)


def _rejected(message: str, code: str = "INVALID_RECEIPT") -> ValidationResult:
    return ValidationResult(valid=False, error=categorize({"code": code, "message": message}))


def _from_millis(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


class AppStoreReceiptValidator:
    """Validates iOS receipts with Apple's verifyReceipt API."""

    PRODUCTION_URL = "https://buy.itunes.apple.com/verifyReceipt"
    SANDBOX_URL = "https://sandbox.itunes.apple.com/verifyReceipt"

    # Status returned by production for receipts issued in the sandbox
    SANDBOX_RECEIPT_STATUS = 21007
    # Apple asks clients to retry these
    RETRYABLE_STATUSES = {21005, 21009}

    def __init__(
        self,
        shared_secret: Optional[str] = None,
        use_sandbox: Optional[bool] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self._shared_secret = shared_secret if shared_secret is not None else settings.apple_shared_secret
        self._use_sandbox = use_sandbox if use_sandbox is not None else settings.apple_use_sandbox
        self._timeout = timeout
        self._transport = transport

    async def validate_receipt(
        self,
        receipt_data: str,
        product_id: str,
        transaction_id: Optional[str] = None,
    ) -> ValidationResult:
        payload: dict[str, Any] = {
            "receipt-data": receipt_data,
            "exclude-old-transactions": True,
        }
        if self._shared_secret:
            payload["password"] = self._shared_secret

        url = self.SANDBOX_URL if self._use_sandbox else self.PRODUCTION_URL
        data = await self._post(url, payload)
        status = data.get("status")

        if status == self.SANDBOX_RECEIPT_STATUS and not self._use_sandbox:
            logger.info("Sandbox receipt sent to production, retrying against sandbox")
            data = await self._post(self.SANDBOX_URL, payload)
            status = data.get("status")

        if status in self.RETRYABLE_STATUSES or (
            isinstance(status, int) and 21100 <= status <= 21199
        ):
            raise ReceiptServiceError(
                f"App Store temporarily unavailable (status {status})",
                platform="app_store",
                status=503,
            )
        if status != 0:
            return _rejected(f"App Store rejected receipt with status {status}")

        entries = list(data.get("receipt", {}).get("in_app", []))
        entries.extend(data.get("latest_receipt_info", []))
        entries = [e for e in entries if e.get("product_id") == product_id]

        # A receipt lists every purchase of a consumable; pick the one being claimed
        if transaction_id:
            match = next((e for e in entries if e.get("transaction_id") == transaction_id), None)
        else:
            match = max(entries, key=lambda e: int(e.get("purchase_date_ms") or 0), default=None)
        if match is None and transaction_id:
            return _rejected(f"Transaction {transaction_id} for {product_id} not found in receipt")
        if match is None:
            return _rejected(f"Product {product_id} not found in receipt")

        return ValidationResult(
            valid=True,
            product_id=product_id,
            transaction_id=match.get("transaction_id"),
            purchase_date=_from_millis(match.get("purchase_date_ms")),
        )

    async def _post(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            response = await client.post(url, json=payload)
            if response.status_code == 429 or response.status_code >= 500:
                raise ReceiptServiceError(
                    f"App Store returned HTTP {response.status_code}",
                    platform="app_store",
                    status=response.status_code,
                )
            response.raise_for_status()
            return response.json()


class GooglePlayReceiptValidator:
    """
    Validates Android purchases with the Android Publisher API.

    The receipt payload is the JSON purchase object returned by the Play
    Billing client (purchaseToken, orderId, purchaseTime). The token names a
    single purchase, so a client-reported transaction ID is not needed.
    """

    API_URL = (
        "https://androidpublisher.googleapis.com/androidpublisher/v3/applications/"
        "{package_name}/purchases/products/{product_id}/tokens/{token}"
    )

    PURCHASED = 0
    CANCELLED = 1

    def __init__(
        self,
        package_name: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self._package_name = package_name or settings.google_package_name
        self._access_token = access_token or settings.google_access_token
        self._timeout = timeout
        self._transport = transport

    async def validate_receipt(
        self,
        receipt_data: str,
        product_id: str,
        transaction_id: Optional[str] = None,
    ) -> ValidationResult:
        try:
            purchase = json.loads(receipt_data)
        except ValueError:
            return _rejected("Receipt is not valid purchase JSON")
        if not isinstance(purchase, dict) or not purchase.get("purchaseToken"):
            return _rejected("Receipt has no purchase token")

        if not self._package_name or not self._access_token:
            logger.error("Google Play validation requested but not configured")
            return _rejected("Google Play validation is not configured", code="PAYMENT_FAILED")

        url = self.API_URL.format(
            package_name=self._package_name,
            product_id=product_id,
            token=purchase["purchaseToken"],
        )
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            response = await client.get(
                url,
                headers={"Authorization": f"Bearer {self._access_token}"},
            )

        if response.status_code in (404, 410):
            return _rejected("Google Play does not recognize this purchase token")
        if response.status_code == 429 or response.status_code >= 500:
            raise ReceiptServiceError(
                f"Google Play returned HTTP {response.status_code}",
                platform="google_play",
                status=response.status_code,
            )
        response.raise_for_status()

        data = response.json()
        state = data.get("purchaseState", self.PURCHASED)
        if state == self.CANCELLED:
            return _rejected("Purchase was cancelled", code="PAYMENT_CANCELLED")
        if state != self.PURCHASED:
            return _rejected(f"Purchase is not complete (state {state})")

        return ValidationResult(
            valid=True,
            product_id=product_id,
            transaction_id=data.get("orderId") or purchase.get("orderId"),
            purchase_date=_from_millis(
                data.get("purchaseTimeMillis") or purchase.get("purchaseTime")
            ),
        )
