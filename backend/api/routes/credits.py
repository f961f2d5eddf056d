"""
Credit endpoints.

Read-only views over the credit ledger. Balances change only through
purchases, refunds and sticker generation.
"""

from fastapi import APIRouter, Depends, Query

from shared.models import AuthenticatedUser
from modules.ledger import CreditValidation, ICreditLedger
from modules.ledger.models import (
    BalanceResponse,
    TransactionListResponse,
    ValidateCreditsRequest,
)
from ..dependencies import get_credit_ledger
from ..middleware.auth import get_current_user

router = APIRouter()


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    user: AuthenticatedUser = Depends(get_current_user),
    ledger: ICreditLedger = Depends(get_credit_ledger),
) -> BalanceResponse:
    """Get the current user's credit balance."""
    balance = await ledger.check_balance(user.id)
    return BalanceResponse(user_id=user.id, balance=balance)


@router.get("/history", response_model=TransactionListResponse)
async def get_history(
    limit: int = Query(default=50, ge=1, le=100, description="Maximum transactions"),
    offset: int = Query(default=0, ge=0, description="Transactions to skip"),
    user: AuthenticatedUser = Depends(get_current_user),
    ledger: ICreditLedger = Depends(get_credit_ledger),
) -> TransactionListResponse:
    """
    Get the current user's transaction history.

    Oldest first, in the order the ledger applied them.
    """
    transactions = await ledger.history(user.id)
    page = transactions[offset : offset + limit]
    return TransactionListResponse(
        transactions=page,
        total=len(transactions),
        has_more=offset + len(page) < len(transactions),
    )


@router.post("/validate", response_model=CreditValidation)
async def validate_credits(
    request: ValidateCreditsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    ledger: ICreditLedger = Depends(get_credit_ledger),
) -> CreditValidation:
    """Check whether the user can afford an operation, without reserving credits."""
    return await ledger.validate_credits(user.id, request.required_credits)
