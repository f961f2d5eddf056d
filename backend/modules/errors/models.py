"""
Error classification data models.

ClassifiedError is the only error shape that crosses a component
boundary. It is created where a raw failure is first observed and
flows outward unchanged.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorType(str, Enum):
    """Closed taxonomy of error categories."""

    NETWORK = "NETWORK"
    VALIDATION = "VALIDATION"
    AUTHENTICATION = "AUTHENTICATION"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    AI_PROCESSING = "AI_PROCESSING"
    PAYMENT = "PAYMENT"
    FILE_PROCESSING = "FILE_PROCESSING"
    UNKNOWN = "UNKNOWN"


class ClassifiedError(BaseModel):
    """
    A failure normalized into the closed taxonomy.

    `message` is technical and meant for logs; `user_message` is safe
    to display to end users.
    """

    type: ErrorType = Field(..., description="Error category")
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Technical message for logs")
    user_message: str = Field(..., description="Message safe to show to users")
    retryable: bool = Field(default=False, description="Whether retrying may succeed")
    status_code: int = Field(default=500, description="HTTP-style status")
    details: Optional[dict[str, Any]] = Field(None, description="Extra context")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the error was classified",
    )

    model_config = {"frozen": True}

    def to_envelope(self) -> dict[str, Any]:
        """Render the HTTP JSON error envelope."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.user_message,
            "retryable": self.retryable,
        }
        if self.details:
            error["details"] = self.details
        return {"success": False, "error": error}
