"""
Credit ledger module.

Owns every user's credit balance and the append-only transaction log.

Public API:
- ICreditLedger: Interface for balance operations
- ILedgerStore: Storage contract (atomic per-user apply)
- CreditLedger: Ledger service
- InMemoryLedgerStore / SupabaseLedgerStore: Storage backends
- CreditTransaction, TransactionType, UserAccount: Data models
- Ledger exceptions: InsufficientCreditsError, etc.
"""

from .interfaces import ICreditLedger, ILedgerStore
from .models import (
    CreditTransaction,
    CreditValidation,
    LedgerResult,
    TransactionType,
    UserAccount,
)
from .exceptions import (
    LedgerError,
    InsufficientCreditsError,
    InvalidAmountError,
    UserNotFoundError,
    UserAlreadyExistsError,
)
from .service import CreditLedger
from .store import InMemoryLedgerStore, SupabaseLedgerStore

__all__ = [
    # Interfaces
    "ICreditLedger",
    "ILedgerStore",
    # Models
    "CreditTransaction",
    "CreditValidation",
    "LedgerResult",
    "TransactionType",
    "UserAccount",
    # Exceptions
    "LedgerError",
    "InsufficientCreditsError",
    "InvalidAmountError",
    "UserNotFoundError",
    "UserAlreadyExistsError",
    # Service
    "CreditLedger",
    "InMemoryLedgerStore",
    "SupabaseLedgerStore",
]
