"""
Sticker generation module.

Gates AI sticker generation on the credit ledger: credits are debited
only after the image model succeeds.

Public API:
- IUsageGate / UsageGate: Credit-gated generation
- IStickerGenerator / GeminiStickerGenerator: Image model client
- IMonitoringSink / LoggingMonitoringSink: Usage telemetry
"""

from .interfaces import IMonitoringSink, IStickerGenerator, IUsageGate
from .models import (
    GeneratedImage,
    GeneratedSticker,
    GenerationEvent,
    GenerationResult,
    StickerRequest,
)
from .exceptions import GenerationFailedError, GenerationServiceError
from .gemini import GeminiStickerGenerator
from .monitoring import LoggingMonitoringSink
from .prompts import build_style_prompt
from .service import UsageGate

__all__ = [
    # Interfaces
    "IMonitoringSink",
    "IStickerGenerator",
    "IUsageGate",
    # Models
    "GeneratedImage",
    "GeneratedSticker",
    "GenerationEvent",
    "GenerationResult",
    "StickerRequest",
    # Exceptions
    "GenerationFailedError",
    "GenerationServiceError",
    # Implementations
    "GeminiStickerGenerator",
    "LoggingMonitoringSink",
    "UsageGate",
    "build_style_prompt",
]
