"""
Tests for shared models.
"""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from shared.models import AuthenticatedUser


class TestAuthenticatedUser:
    """Tests for the AuthenticatedUser model in shared."""

    def test_create_with_id_only(self):
        """Email is optional; identity comes from the token subject."""
        user = AuthenticatedUser(id="user-123")
        assert user.id == "user-123"
        assert user.email is None

    def test_default_values(self):
        user = AuthenticatedUser(id="user-123", email="test@example.com")
        assert user.email_verified is False
        assert user.role == "user"
        assert user.last_sign_in is None

    def test_all_fields(self):
        now = datetime.now(timezone.utc)
        user = AuthenticatedUser(
            id="user-123",
            email="test@example.com",
            email_verified=True,
            last_sign_in=now,
            role="admin",
        )
        assert user.email_verified is True
        assert user.role == "admin"
        assert user.last_sign_in == now

    def test_ignores_extra_claims(self):
        user = AuthenticatedUser(id="user-123", aud="authenticated")
        assert not hasattr(user, "aud")

    def test_frozen(self):
        user = AuthenticatedUser(id="user-123")
        with pytest.raises(ValidationError):
            user.id = "other"
