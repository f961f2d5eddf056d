"""
Exception carrying a ClassifiedError across component boundaries.
"""

from shared.exceptions import StickerError

from .models import ClassifiedError


class ClassifiedServiceError(StickerError):
    """
    Raised when an operation fails with an already-classified error.

    The wrapped ClassifiedError is authoritative: its status, retryability
    and user message override the class-level defaults.
    """

    def __init__(self, error: ClassifiedError):
        super().__init__(error.message, code=error.code, details=dict(error.details or {}))
        self.error = error
        self.status_code = error.status_code
        self.retryable = error.retryable
        self.user_message = error.user_message
