"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

Storage backends are chosen by Settings.storage_backend: in-memory
stores by default, Supabase-backed stores in production.
"""

from typing import TYPE_CHECKING

from shared.config import get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.errors.classifier import ErrorClassifier
    from modules.generation.interfaces import IMonitoringSink, IStickerGenerator, IUsageGate
    from modules.ledger.interfaces import ICreditLedger, ILedgerStore
    from modules.payments.interfaces import (
        IPurchaseProcessor,
        ISubscriptionManager,
        ISubscriptionStore,
        ITransactionRecordStore,
    )


class ServiceContainer:
    """
    Container for all service instances.

    Services are created lazily on first access and cached as singletons
    within the container. Use reset() to clear them for testing.
    """

    def __init__(self) -> None:
        self._ledger_store: "ILedgerStore | None" = None
        self._record_store: "ITransactionRecordStore | None" = None
        self._subscription_store: "ISubscriptionStore | None" = None
        self._ledger: "ICreditLedger | None" = None
        self._purchases: "IPurchaseProcessor | None" = None
        self._subscriptions: "ISubscriptionManager | None" = None
        self._generator: "IStickerGenerator | None" = None
        self._monitoring: "IMonitoringSink | None" = None
        self._usage_gate: "IUsageGate | None" = None
        self._classifier: "ErrorClassifier | None" = None

    @property
    def ledger_store(self) -> "ILedgerStore":
        """Get the ledger storage backend."""
        if self._ledger_store is None:
            if get_settings().storage_backend == "supabase":
                from modules.ledger.store import SupabaseLedgerStore
                from shared.database import get_supabase_client
                self._ledger_store = SupabaseLedgerStore(get_supabase_client())
            else:
                from modules.ledger.store import InMemoryLedgerStore
                self._ledger_store = InMemoryLedgerStore()
        return self._ledger_store

    @property
    def record_store(self) -> "ITransactionRecordStore":
        """Get the purchase record storage backend."""
        if self._record_store is None:
            if get_settings().storage_backend == "supabase":
                from modules.payments.store import SupabaseTransactionRecordStore
                from shared.database import get_supabase_client
                self._record_store = SupabaseTransactionRecordStore(get_supabase_client())
            else:
                from modules.payments.store import InMemoryTransactionRecordStore
                self._record_store = InMemoryTransactionRecordStore()
        return self._record_store

    @property
    def subscription_store(self) -> "ISubscriptionStore":
        """Get the subscription storage backend."""
        if self._subscription_store is None:
            if get_settings().storage_backend == "supabase":
                from modules.payments.store import SupabaseSubscriptionStore
                from shared.database import get_supabase_client
                self._subscription_store = SupabaseSubscriptionStore(get_supabase_client())
            else:
                from modules.payments.store import InMemorySubscriptionStore
                self._subscription_store = InMemorySubscriptionStore()
        return self._subscription_store

    @property
    def ledger(self) -> "ICreditLedger":
        """Get the credit ledger instance."""
        if self._ledger is None:
            from modules.ledger.service import CreditLedger
            self._ledger = CreditLedger(self.ledger_store)
        return self._ledger

    @property
    def purchases(self) -> "IPurchaseProcessor":
        """Get the purchase processor instance."""
        if self._purchases is None:
            from modules.payments.models import Platform
            from modules.payments.service import PurchaseProcessor
            from modules.payments.validators import (
                AppStoreReceiptValidator,
                GooglePlayReceiptValidator,
            )
            self._purchases = PurchaseProcessor(
                ledger=self.ledger,
                records=self.record_store,
                validators={
                    Platform.IOS: AppStoreReceiptValidator(),
                    Platform.ANDROID: GooglePlayReceiptValidator(),
                },
                subscriptions=self.subscriptions,
                classifier=self.classifier,
            )
        return self._purchases

    @property
    def subscriptions(self) -> "ISubscriptionManager":
        """Get the subscription manager instance."""
        if self._subscriptions is None:
            from modules.payments.subscriptions import SubscriptionManager
            self._subscriptions = SubscriptionManager(self.subscription_store)
        return self._subscriptions

    @property
    def generator(self) -> "IStickerGenerator":
        """Get the image model client."""
        if self._generator is None:
            from modules.generation.gemini import GeminiStickerGenerator
            self._generator = GeminiStickerGenerator()
        return self._generator

    @property
    def monitoring(self) -> "IMonitoringSink":
        """Get the monitoring sink."""
        if self._monitoring is None:
            from modules.generation.monitoring import LoggingMonitoringSink
            self._monitoring = LoggingMonitoringSink()
        return self._monitoring

    @property
    def usage_gate(self) -> "IUsageGate":
        """Get the usage gate instance."""
        if self._usage_gate is None:
            from modules.generation.service import UsageGate
            self._usage_gate = UsageGate(
                ledger=self.ledger,
                generator=self.generator,
                monitoring=self.monitoring,
                classifier=self.classifier,
            )
        return self._usage_gate

    @property
    def classifier(self) -> "ErrorClassifier":
        """Get the error classifier."""
        if self._classifier is None:
            from modules.errors.classifier import ErrorClassifier
            self._classifier = ErrorClassifier()
        return self._classifier

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._ledger_store = None
        self._record_store = None
        self._subscription_store = None
        self._ledger = None
        self._purchases = None
        self._subscriptions = None
        self._generator = None
        self._monitoring = None
        self._usage_gate = None
        self._classifier = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    The next call to get_container() creates a fresh container with new
    service instances. Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_credit_ledger() -> "ICreditLedger":
    """FastAPI dependency for the credit ledger."""
    return get_container().ledger


def get_purchase_processor() -> "IPurchaseProcessor":
    """FastAPI dependency for the purchase processor."""
    return get_container().purchases


def get_usage_gate() -> "IUsageGate":
    """FastAPI dependency for the usage gate."""
    return get_container().usage_gate


def get_error_classifier() -> "ErrorClassifier":
    """FastAPI dependency for the error classifier."""
    return get_container().classifier


def get_subscription_manager() -> "ISubscriptionManager":
    """FastAPI dependency for the subscription manager."""
    return get_container().subscriptions
