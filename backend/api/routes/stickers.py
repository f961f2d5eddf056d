"""
Sticker generation endpoint.
"""

from fastapi import APIRouter, Depends

from shared.models import AuthenticatedUser
from modules.generation import GenerationResult, IUsageGate, StickerRequest
from ..dependencies import get_usage_gate
from ..middleware.auth import get_current_user

router = APIRouter()


@router.post("/generate", response_model=GenerationResult)
async def generate_sticker(
    request: StickerRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    gate: IUsageGate = Depends(get_usage_gate),
) -> GenerationResult:
    """
    Generate a sticker from an uploaded photo.

    Costs credits only when generation succeeds. Fails with 402
    INSUFFICIENT_CREDITS before calling the AI service when the balance
    is too low.
    """
    return await gate.generate(user.id, request)
