"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """
    Represents an authenticated user in the system.

    This model is populated from JWT claims and made available
    to route handlers via dependency injection. Token issuance is
    handled upstream; by the time we see this model the identity
    is already verified.
    """

    id: str = Field(..., description="User ID (UUID from Supabase)")
    email: Optional[str] = Field(None, description="User's email address")
    email_verified: bool = Field(default=False, description="Whether email is verified")
    last_sign_in: Optional[datetime] = Field(None, description="Last sign-in time")
    role: str = Field(default="user", description="User role")

    model_config = {
        "frozen": True,
        "extra": "ignore",  # Ignore extra fields from JWT
    }
