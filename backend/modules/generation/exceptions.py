"""
Generation module exceptions.
"""

from typing import Optional

from shared.exceptions import ExternalServiceError
from modules.errors.exceptions import ClassifiedServiceError
from modules.errors.models import ClassifiedError


class GenerationServiceError(ExternalServiceError):
    """
    Raw failure reported by the image model.

    The code drives retry and classification: SAFETY_BLOCK is terminal,
    MODEL_UNAVAILABLE and QUOTA_EXCEEDED are transient.
    """

    def __init__(
        self,
        message: str,
        code: str = "AI_SERVICE_ERROR",
        status: Optional[int] = None,
    ):
        super().__init__(message, service="gemini", code=code, status=status)


class GenerationFailedError(ClassifiedServiceError):
    """Raised by UsageGate when generation fails. No credits were debited."""

    def __init__(self, error: ClassifiedError):
        super().__init__(error)
