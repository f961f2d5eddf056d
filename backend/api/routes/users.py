"""
User-related endpoints.

Provides endpoints for the user profile and ledger account registration.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from shared.models import AuthenticatedUser
from modules.ledger import ICreditLedger, UserNotFoundError
from ..dependencies import get_credit_ledger
from ..middleware.auth import get_current_user

router = APIRouter()


class UserProfileResponse(BaseModel):
    """User profile response model."""

    id: str
    email: Optional[str]
    email_verified: bool
    role: str
    registered: bool
    credits: Optional[int] = None


class RegisterResponse(BaseModel):
    """Response for a newly created credit account."""

    user_id: str
    credits: int


@router.get("/me", response_model=UserProfileResponse)
async def get_current_user_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    ledger: ICreditLedger = Depends(get_credit_ledger),
) -> UserProfileResponse:
    """
    Get the current user's profile and credit balance.

    Requires authentication.
    """
    try:
        credits: Optional[int] = await ledger.check_balance(user.id)
    except UserNotFoundError:
        credits = None

    return UserProfileResponse(
        id=user.id,
        email=user.email,
        email_verified=user.email_verified,
        role=user.role,
        registered=credits is not None,
        credits=credits,
    )


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    user: AuthenticatedUser = Depends(get_current_user),
    ledger: ICreditLedger = Depends(get_credit_ledger),
) -> RegisterResponse:
    """
    Create the current user's credit account with the starting grant.

    Fails with 409 if the account already exists.
    """
    account = await ledger.register_user(user.id)
    return RegisterResponse(user_id=account.user_id, credits=account.balance)
