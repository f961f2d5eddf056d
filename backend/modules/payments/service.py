"""
Purchase processor.

Translates platform purchase and refund events into ledger operations
exactly once per platform transaction ID. Plan purchases also start or
renew the user's subscription.

Every check that can reject a purchase (platform, receipt, catalog,
duplicate transaction) runs before the ledger is touched, so a failed
purchase never leaves a partial ledger entry.
"""

import asyncio
import logging
from typing import Mapping, Optional

from shared.retry import RetryOptions, SleepFunc, payment_error, with_retry
from modules.errors.classifier import ErrorClassifier
from modules.ledger import (
    ICreditLedger,
    InsufficientCreditsError,
    TransactionType,
)

from .catalog import CreditCatalog
from .exceptions import (
    DuplicateTransactionError,
    InsufficientCreditsForRefundError,
    InvalidProductError,
    ReceiptValidationError,
    RefundAlreadyProcessedError,
    TransactionNotFoundError,
    UnsupportedPlatformError,
)
from .interfaces import IPurchaseProcessor, IReceiptValidator, ITransactionRecordStore
from .models import (
    CreditPackage,
    Platform,
    PurchaseReceipt,
    PurchaseResult,
    RefundResult,
    SubscriptionPlan,
    TransactionRecord,
    ValidationResult,
)
from .store import InMemorySubscriptionStore
from .subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)


class PurchaseProcessor(IPurchaseProcessor):
    """
    Applies validated platform purchases and refunds to the credit ledger.

    The transaction-record store is the idempotency boundary: a platform
    transaction ID is claimed with a single atomic insert before the
    ledger is credited, so concurrent deliveries of the same receipt
    credit at most once.
    """

    def __init__(
        self,
        ledger: ICreditLedger,
        records: ITransactionRecordStore,
        validators: Mapping[Platform, IReceiptValidator],
        catalog: Optional[CreditCatalog] = None,
        subscriptions: Optional[SubscriptionManager] = None,
        retry_options: Optional[RetryOptions] = None,
        classifier: Optional[ErrorClassifier] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self._ledger = ledger
        self._records = records
        self._validators = dict(validators)
        self._catalog = catalog or CreditCatalog()
        self._subscriptions = subscriptions or SubscriptionManager(
            InMemorySubscriptionStore(), self._catalog
        )
        self._retry_options = retry_options or RetryOptions.from_settings(payment_error)
        self._classifier = classifier or ErrorClassifier()
        self._sleep = sleep

    # Catalog

    def get_credit_packages(self) -> list[CreditPackage]:
        return self._catalog.packages

    def get_subscription_plans(self) -> list[SubscriptionPlan]:
        return self._catalog.plans

    async def get_purchase_history(self, user_id: str) -> list[TransactionRecord]:
        """A user's processed purchases, most recent first."""
        return await self._records.list_for_user(user_id)

    # Receipts

    def _resolve_platform(self, platform: str) -> Platform:
        try:
            resolved = Platform(platform.lower())
        except ValueError:
            raise UnsupportedPlatformError(platform)
        if resolved not in self._validators:
            raise UnsupportedPlatformError(platform)
        return resolved

    async def validate_receipt(
        self,
        platform: str,
        receipt_data: str,
        product_id: str,
        transaction_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate a receipt with the platform, retrying transient failures.

        Failures, including an unsupported platform, come back as
        ValidationResult(valid=False) carrying a ClassifiedError; after
        exhausted retries the error stays retryable.
        """
        try:
            validator = self._validators[self._resolve_platform(platform)]
            return await with_retry(
                lambda: validator.validate_receipt(receipt_data, product_id, transaction_id),
                self._retry_options,
                sleep=self._sleep,
            )
        except Exception as e:
            classified = self._classifier.categorize(e)
            self._classifier.log_error(classified, context=f"receipt validation ({platform})")
            return ValidationResult(valid=False, error=classified)

    # Purchases

    async def process_purchase(self, user_id: str, receipt: PurchaseReceipt) -> PurchaseResult:
        platform = self._resolve_platform(receipt.platform)

        validation = await self.validate_receipt(
            receipt.platform, receipt.receipt_data, receipt.product_id, receipt.transaction_id
        )
        if not validation.valid:
            raise ReceiptValidationError(
                validation.error or self._classifier.categorize(
                    {"code": "INVALID_RECEIPT", "message": "Receipt validation failed"}
                )
            )
        if validation.product_id and validation.product_id != receipt.product_id:
            raise ReceiptValidationError(self._classifier.categorize({
                "code": "INVALID_RECEIPT",
                "message": (
                    f"Receipt is for {validation.product_id}, "
                    f"not {receipt.product_id}"
                ),
            }))

        package = self._catalog.get_package(receipt.product_id)
        plan = self._catalog.get_plan(receipt.product_id) if package is None else None
        if package is None and plan is None:
            raise InvalidProductError(receipt.product_id)

        transaction_id = validation.transaction_id or receipt.transaction_id
        if not transaction_id:
            raise ReceiptValidationError(self._classifier.categorize(
                {"code": "INVALID_RECEIPT", "message": "Receipt has no transaction ID"}
            ))

        # Unknown users fail here, before the transaction ID is claimed
        await self._ledger.check_balance(user_id)

        if package is not None:
            credits = package.credits
            description = f"Purchase: {package.name} ({credits} credits)"
        else:
            credits = plan.monthly_credits
            description = f"Subscription: {plan.name} ({credits} credits)"

        record = TransactionRecord(
            transaction_id=transaction_id,
            user_id=user_id,
            product_id=receipt.product_id,
            platform=platform,
            credits_granted=credits,
        )
        if not await self._records.insert_if_absent(record):
            logger.warning(f"Duplicate purchase {transaction_id} for user {user_id}")
            raise DuplicateTransactionError(transaction_id)

        def grant():
            return self._ledger.credit(
                user_id,
                credits,
                description,
                related_ids=[transaction_id],
                transaction_type=TransactionType.PURCHASE,
                reference_id=transaction_id,
            )

        subscription = None
        try:
            if plan is None:
                result = await grant()
            else:
                subscription, result = await self._subscriptions.activate(
                    user_id, plan, transaction_id, grant
                )
        except Exception:
            # Release the claim so the purchase can be redelivered
            await self._records.remove(transaction_id)
            raise

        logger.info(
            f"Processed purchase {transaction_id}: {credits} credits "
            f"for {user_id} via {platform.value}"
        )
        return PurchaseResult(
            transaction_id=transaction_id,
            credits_added=credits,
            new_balance=result.new_balance,
            subscription=subscription,
        )

    # Refunds

    async def process_refund(
        self,
        user_id: str,
        transaction_id: str,
        reason: str,
    ) -> RefundResult:
        record = await self._records.get(transaction_id)
        if record is None or record.user_id != user_id:
            raise TransactionNotFoundError(transaction_id)
        if record.refunded:
            raise RefundAlreadyProcessedError(transaction_id)

        amount = record.credits_granted
        balance = await self._ledger.check_balance(user_id)
        if balance < amount:
            raise InsufficientCreditsForRefundError(transaction_id, amount, balance)

        if not await self._records.mark_refunded(transaction_id):
            raise RefundAlreadyProcessedError(transaction_id)

        try:
            result = await self._ledger.debit(
                user_id,
                amount,
                f"Refund: {reason} (Transaction: {transaction_id})",
                related_ids=[transaction_id],
                transaction_type=TransactionType.REFUND,
                reference_id=transaction_id,
            )
        except InsufficientCreditsError as e:
            # Balance was spent between the check and the debit
            await self._records.clear_refunded(transaction_id)
            raise InsufficientCreditsForRefundError(transaction_id, amount, e.available) from e
        except Exception:
            await self._records.clear_refunded(transaction_id)
            raise

        logger.info(f"Refunded {amount} credits from {user_id} for {transaction_id}: {reason}")
        return RefundResult(
            transaction_id=transaction_id,
            credits_added=-amount,
            new_balance=result.new_balance,
        )
