"""
Base repository class for database access.

Provides a common abstraction layer for all Supabase-backed stores,
encapsulating client access and translating driver failures into
StorageError so they surface as retryable DATABASE_ERRORs.
"""

import logging
from typing import Any, Callable, TypeVar, Generic
from supabase import Client

from .exceptions import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - Generic type parameter for model type hints
    - _execute() wrapper that maps driver errors to StorageError

    Subclasses should implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class TransactionRecordStore(BaseRepository[TransactionRecord]):
            def get(self, transaction_id: str) -> Optional[TransactionRecord]:
                result = self._execute(
                    lambda: self._db.table("purchase_records")
                    .select("*").eq("transaction_id", transaction_id).execute()
                )
                if not result.data:
                    return None
                return self._map_to_record(result.data[0])
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db

    def _execute(self, query: Callable[[], Any]) -> Any:
        """Run a query, converting unexpected driver errors to StorageError."""
        try:
            return query()
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Database operation failed: {e}")
            raise StorageError(f"Database operation failed: {e}") from e
