"""Tests for shared/config.py."""

import os
from decimal import Decimal
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from shared.config import Settings, get_settings


class TestSettings:
    def test_default_values(self):
        """Settings should have sensible defaults."""
        settings = Settings()
        assert settings.app_name == "Stickerlab API"
        assert settings.debug is False
        assert settings.port == 8000
        assert settings.storage_backend == "memory"
        assert settings.initial_credits == 10
        assert settings.generation_cost == 1

    def test_retry_defaults(self):
        """Retry settings should default to 3 attempts with 1s base delay."""
        settings = Settings()
        assert settings.retry_max_attempts == 3
        assert settings.retry_base_delay == 1.0
        assert settings.retry_max_delay == 10.0
        assert settings.retry_backoff_factor == 2.0

    def test_loads_from_env(self):
        """Settings should load from environment variables."""
        with patch.dict(os.environ, {"DEBUG": "true", "PORT": "9000", "INITIAL_CREDITS": "25"}):
            settings = Settings()
            assert settings.debug is True
            assert settings.port == 9000
            assert settings.initial_credits == 25

    def test_loads_payment_config_from_env(self):
        """Settings should load platform credentials from the environment."""
        with patch.dict(os.environ, {
            "APPLE_SHARED_SECRET": "apple-secret",
            "APPLE_USE_SANDBOX": "true",
            "GOOGLE_PACKAGE_NAME": "com.example.stickers",
        }):
            settings = Settings()
            assert settings.apple_shared_secret == "apple-secret"
            assert settings.apple_use_sandbox is True
            assert settings.google_package_name == "com.example.stickers"

    def test_generation_unit_cost_is_decimal(self):
        """Estimated generation cost should be a Decimal."""
        assert Settings().generation_unit_cost == Decimal("0.039")

    def test_rejects_unknown_storage_backend(self):
        """Only memory and supabase backends are accepted."""
        with patch.dict(os.environ, {"STORAGE_BACKEND": "redis"}):
            with pytest.raises(ValidationError):
                Settings()


class TestGetSettings:
    def test_get_settings_is_cached(self):
        """get_settings should return the same instance."""
        assert get_settings() is get_settings()

    def test_cache_clear_reloads(self):
        """Clearing the cache should pick up environment changes."""
        get_settings()
        with patch.dict(os.environ, {"GENERATION_COST": "3"}):
            get_settings.cache_clear()
            assert get_settings().generation_cost == 3
