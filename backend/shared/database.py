"""
Supabase client factory.

The ledger and purchase-record stores run with the service role: every
balance change goes through server-side code, never through a client
holding a user token.
"""

import logging
from typing import Optional
from supabase import create_client, Client

from .config import get_settings

logger = logging.getLogger(__name__)

_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Get the shared service-role Supabase client, creating it on first use.

    Raises:
        RuntimeError: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is unset
    """
    global _client

    if _client is None:
        settings = get_settings()
        missing = [
            name for name, value in (
                ("SUPABASE_URL", settings.supabase_url),
                ("SUPABASE_SERVICE_ROLE_KEY", settings.supabase_service_role_key),
            )
            if not value
        ]
        if missing:
            raise RuntimeError(f"Supabase configuration missing: {', '.join(missing)}")

        _client = create_client(settings.supabase_url, settings.supabase_service_role_key)
        logger.info(f"Connected Supabase client for {settings.supabase_url}")

    return _client


def reset_client_cache() -> None:
    """Drop the cached client (tests, configuration changes)."""
    global _client
    _client = None
