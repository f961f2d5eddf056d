"""
Shared infrastructure for Stickerlab backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes
- retry: Bounded retry executor and retry predicates

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import get_supabase_client, reset_client_cache
from .exceptions import (
    StickerError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    ExternalServiceError,
    StorageError,
)
from .models import AuthenticatedUser
from .retry import (
    RetryError,
    RetryOptions,
    with_retry,
    network_error,
    ai_service_error,
    payment_error,
)

__all__ = [
    "Settings",
    "get_settings",
    "get_supabase_client",
    "reset_client_cache",
    "StickerError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "ExternalServiceError",
    "StorageError",
    "AuthenticatedUser",
    "RetryError",
    "RetryOptions",
    "with_retry",
    "network_error",
    "ai_service_error",
    "payment_error",
]
