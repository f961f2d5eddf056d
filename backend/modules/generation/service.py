"""
Usage gate for sticker generation.

Orchestrates one charged generation: check balance, call the image model
through the retry executor, and debit the ledger only after the model
returned an image. A failed generation never costs credits.
"""

import asyncio
import logging
import time
from typing import Optional

from shared.config import get_settings
from shared.retry import RetryOptions, SleepFunc, ai_service_error, with_retry
from modules.errors.classifier import ErrorClassifier
from modules.ledger import ICreditLedger, InsufficientCreditsError, TransactionType

from .exceptions import GenerationFailedError
from .interfaces import IMonitoringSink, IStickerGenerator, IUsageGate
from .models import (
    GeneratedImage,
    GeneratedSticker,
    GenerationEvent,
    GenerationResult,
    StickerRequest,
)
from .prompts import build_style_prompt

logger = logging.getLogger(__name__)


class UsageGate(IUsageGate):
    """Credit-gated sticker generation."""

    def __init__(
        self,
        ledger: ICreditLedger,
        generator: IStickerGenerator,
        monitoring: Optional[IMonitoringSink] = None,
        retry_options: Optional[RetryOptions] = None,
        classifier: Optional[ErrorClassifier] = None,
        generation_cost: Optional[int] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        settings = get_settings()
        self._ledger = ledger
        self._generator = generator
        self._monitoring = monitoring
        self._retry_options = retry_options or RetryOptions.from_settings(ai_service_error)
        self._classifier = classifier or ErrorClassifier()
        self._cost = generation_cost if generation_cost is not None else settings.generation_cost
        self._unit_cost = settings.generation_unit_cost
        self._sleep = sleep

    async def generate(self, user_id: str, request: StickerRequest) -> GenerationResult:
        validation = await self._ledger.validate_credits(user_id, self._cost)
        if not validation.valid:
            raise InsufficientCreditsError(
                required=self._cost,
                available=validation.current_balance,
                user_id=user_id,
            )

        prompt = build_style_prompt(request.style_id, request.emotion)
        attempts = 0

        async def attempt() -> GeneratedImage:
            nonlocal attempts
            attempts += 1
            return await self._generator.predict(request.image_data, prompt, request.mime_type)

        started = time.monotonic()
        try:
            image = await with_retry(attempt, self._retry_options, sleep=self._sleep)
        except Exception as e:
            classified = self._classifier.categorize(e)
            self._classifier.log_error(classified, context=f"sticker generation for {user_id}")
            await self._report(
                user_id, request, started, attempts,
                success=False, error_code=classified.code,
            )
            raise GenerationFailedError(classified) from e

        sticker = GeneratedSticker(
            style_id=request.style_id,
            emotion=request.emotion,
            image_data=image.data,
            mime_type=image.mime_type,
        )

        # A concurrent request may have drained the balance since the check;
        # the ledger refuses the debit and no sticker is returned.
        ledger_result = await self._ledger.debit(
            user_id,
            self._cost,
            f"Sticker generation: {request.style_id} ({request.emotion})",
            related_ids=[sticker.id],
            transaction_type=TransactionType.CONSUMPTION,
        )

        await self._report(user_id, request, started, attempts, success=True)
        logger.info(
            f"Generated sticker {sticker.id} for {user_id} "
            f"after {attempts} attempt(s), balance {ledger_result.new_balance}"
        )
        return GenerationResult(
            sticker=sticker,
            credits_used=self._cost,
            new_balance=ledger_result.new_balance,
        )

    async def _report(
        self,
        user_id: str,
        request: StickerRequest,
        started: float,
        attempts: int,
        success: bool,
        error_code: Optional[str] = None,
    ) -> None:
        if self._monitoring is None:
            return
        event = GenerationEvent(
            user_id=user_id,
            model=self._generator.model_name,
            processing_time_ms=(time.monotonic() - started) * 1000,
            cost=self._unit_cost * attempts,
            success=success,
            error_code=error_code,
            metadata={
                "style": request.style_id,
                "emotion": request.emotion,
                "retry_count": max(attempts - 1, 0),
            },
        )
        try:
            await self._monitoring.record_generation(event)
        except Exception as e:
            logger.warning(f"Failed to record generation telemetry: {e}")
