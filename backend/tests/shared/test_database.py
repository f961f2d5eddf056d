"""Tests for shared/database.py."""

import pytest
from unittest.mock import patch, MagicMock

from shared.database import get_supabase_client, reset_client_cache


class TestSupabaseClient:
    def setup_method(self):
        """Reset cache before each test."""
        reset_client_cache()

    def teardown_method(self):
        reset_client_cache()

    @patch("shared.database.create_client")
    @patch("shared.database.get_settings")
    def test_creates_client_with_service_role(self, mock_settings, mock_create):
        """Should create client with service role key."""
        mock_settings.return_value.supabase_url = "https://test.supabase.co"
        mock_settings.return_value.supabase_service_role_key = "test-key"
        mock_create.return_value = MagicMock()

        client = get_supabase_client()

        mock_create.assert_called_once_with("https://test.supabase.co", "test-key")
        assert client is mock_create.return_value

    @patch("shared.database.create_client")
    @patch("shared.database.get_settings")
    def test_caches_client(self, mock_settings, mock_create):
        """Should cache the client and not recreate it."""
        mock_settings.return_value.supabase_url = "https://test.supabase.co"
        mock_settings.return_value.supabase_service_role_key = "test-key"

        assert get_supabase_client() is get_supabase_client()
        mock_create.assert_called_once()

    @patch("shared.database.get_settings")
    def test_raises_without_url(self, mock_settings):
        """Should name the missing variable."""
        mock_settings.return_value.supabase_url = ""
        mock_settings.return_value.supabase_service_role_key = "test-key"

        with pytest.raises(RuntimeError, match="SUPABASE_URL"):
            get_supabase_client()

    @patch("shared.database.get_settings")
    def test_raises_without_key(self, mock_settings):
        mock_settings.return_value.supabase_url = "https://test.supabase.co"
        mock_settings.return_value.supabase_service_role_key = ""

        with pytest.raises(RuntimeError, match="SUPABASE_SERVICE_ROLE_KEY"):
            get_supabase_client()

    @patch("shared.database.create_client")
    @patch("shared.database.get_settings")
    def test_reset_client_cache(self, mock_settings, mock_create):
        """Should allow new client creation after reset."""
        mock_settings.return_value.supabase_url = "https://test.supabase.co"
        mock_settings.return_value.supabase_service_role_key = "test-key"
        mock_create.side_effect = [MagicMock(name="client1"), MagicMock(name="client2")]

        client1 = get_supabase_client()
        reset_client_cache()
        client2 = get_supabase_client()

        assert mock_create.call_count == 2
        assert client1 is not client2
