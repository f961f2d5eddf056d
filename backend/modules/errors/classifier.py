"""
Error classifier.

Normalizes heterogeneous raw failures (network calls, the AI service,
payment providers, our own domain exceptions) into the closed ErrorType
taxonomy before they cross a component boundary.

Matching priority for raw failures:
1. Explicit error code
2. HTTP status
3. Message substring heuristics
4. UNKNOWN fallback
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

from shared.exceptions import ExternalServiceError, StickerError
from shared.retry import (
    RetryError,
    error_code,
    error_message,
    error_status,
    is_connectivity_error,
)

from .exceptions import ClassifiedServiceError
from .models import ClassifiedError, ErrorType

logger = logging.getLogger(__name__)

RawError = Union[BaseException, Mapping, ClassifiedError]

_NETWORK_HINTS = ("network", "timeout", "timed out", "connection", "unreachable")

_AI_CODES = {"SAFETY_BLOCK", "QUOTA_EXCEEDED", "MODEL_UNAVAILABLE"}
_PAYMENT_CODES = {"PAYMENT_CANCELLED", "INSUFFICIENT_FUNDS", "PAYMENT_FAILED", "INVALID_RECEIPT"}
_FILE_CODES = {"FILE_TOO_LARGE", "UNSUPPORTED_FORMAT", "CORRUPTED_FILE"}
_AUTH_CODES = {"UNAUTHORIZED", "FORBIDDEN", "INVALID_TOKEN", "TOKEN_EXPIRED"}


class _RawFailure(Exception):
    """Adapter giving mapping-shaped failures the attributes of an exception."""

    def __init__(self, data: Mapping):
        self.message = str(data.get("message") or "")
        super().__init__(self.message)
        self.code = data.get("code")
        self.status = data.get("status", data.get("status_code"))


class ErrorClassifier:
    """
    Maps raw errors to ClassifiedError.

    Every classified error carries a technical `message` and a separate
    `user_message`; raw exception text never reaches end users.
    """

    def categorize(self, error: RawError) -> ClassifiedError:
        """Classify any raw failure."""
        if isinstance(error, ClassifiedError):
            return error
        if isinstance(error, ClassifiedServiceError):
            return error.error
        if isinstance(error, RetryError):
            classified = self.categorize(error.last_error)
            details = dict(classified.details or {})
            details["attempts"] = error.attempts
            return classified.model_copy(update={"details": details})
        if isinstance(error, Mapping):
            error = _RawFailure(error)

        # Our own domain errors already know their status and audience
        if isinstance(error, StickerError) and not isinstance(error, ExternalServiceError):
            return self._from_domain_error(error)

        return self._from_raw_error(error)

    # Priority-ordered matching

    def _from_raw_error(self, error: BaseException) -> ClassifiedError:
        code = error_code(error)
        if code:
            classified = self._match_code(code, error)
            if classified is not None:
                return classified

        if is_connectivity_error(error):
            return self.handle_network_error(error)

        status = error_status(error)
        if status is not None and status >= 400:
            if status in (401, 403):
                return self.handle_authentication_error(error)
            return self.handle_network_error(error)

        message = error_message(error).lower()
        if any(hint in message for hint in _NETWORK_HINTS):
            return self.handle_network_error(error, force_connectivity=True)
        if "rate limit" in message or "too many requests" in message:
            return self._rate_limited()

        return self.handle_generic_error(error)

    def _match_code(self, code: str, error: BaseException) -> Optional[ClassifiedError]:
        if code == "NETWORK_ERROR":
            return self.handle_network_error(error, force_connectivity=True)
        if code in ("RATE_LIMITED", "RATE_LIMIT_EXCEEDED"):
            return self._rate_limited()
        if code in _AUTH_CODES:
            return self.handle_authentication_error(error)
        if code in _AI_CODES or code.startswith(("AI_", "SAFETY_", "MODEL_")):
            return self.handle_ai_processing_error(error)
        if code in _PAYMENT_CODES or code.startswith(("PAYMENT_", "BILLING_")):
            return self.handle_payment_error(error)
        if code in _FILE_CODES or code.startswith(("FILE_", "IMAGE_")):
            return self.handle_file_processing_error(error)
        if code == "INSUFFICIENT_CREDITS":
            return self.handle_insufficient_credits_error()
        return None

    def _from_domain_error(self, error: StickerError) -> ClassifiedError:
        if error.code == "INSUFFICIENT_CREDITS":
            return self.handle_insufficient_credits_error(error.details)
        try:
            error_type = ErrorType(error.category)
        except ValueError:
            error_type = ErrorType.UNKNOWN
        return ClassifiedError(
            type=error_type,
            code=error.code,
            message=error.message,
            user_message=error.user_message,
            retryable=error.retryable,
            status_code=error.status_code,
            details=error.details or None,
        )

    # Category handlers

    def handle_network_error(
        self,
        error: BaseException,
        force_connectivity: bool = False,
    ) -> ClassifiedError:
        """Connectivity failures, 5xx, 429 and other failed requests."""
        status = error_status(error)
        if force_connectivity or is_connectivity_error(error):
            return ClassifiedError(
                type=ErrorType.NETWORK,
                code="NO_CONNECTION",
                message=f"Network connection failed: {error_message(error)}",
                user_message="Please check your internet connection and try again.",
                retryable=True,
                status_code=503,
            )
        if status is not None and status >= 500:
            return ClassifiedError(
                type=ErrorType.NETWORK,
                code="SERVER_ERROR",
                message=f"Server error: {status}",
                user_message="Our servers are experiencing issues. Please try again in a moment.",
                retryable=True,
                status_code=503,
                details={"upstream_status": status},
            )
        if status == 429:
            return self._rate_limited()
        return ClassifiedError(
            type=ErrorType.NETWORK,
            code="REQUEST_FAILED",
            message=f"Request failed: {error_message(error)}",
            user_message="Something went wrong with your request. Please try again.",
            retryable=False,
            status_code=status or 400,
        )

    def _rate_limited(self) -> ClassifiedError:
        return ClassifiedError(
            type=ErrorType.NETWORK,
            code="RATE_LIMITED",
            message="Too many requests",
            user_message="You're making requests too quickly. Please wait a moment and try again.",
            retryable=True,
            status_code=429,
        )

    def handle_ai_processing_error(self, error: BaseException) -> ClassifiedError:
        """Failures reported by the generative-image service."""
        code = error_code(error)
        if code == "SAFETY_BLOCK" or (code or "").startswith("SAFETY_"):
            return ClassifiedError(
                type=ErrorType.AI_PROCESSING,
                code="CONTENT_BLOCKED",
                message="Content blocked by safety filters",
                user_message=(
                    "Your image couldn't be processed due to content guidelines. "
                    "Please try a different photo."
                ),
                retryable=False,
                status_code=422,
            )
        if code == "QUOTA_EXCEEDED":
            return ClassifiedError(
                type=ErrorType.AI_PROCESSING,
                code="QUOTA_EXCEEDED",
                message="AI service quota exceeded",
                user_message="We've reached our processing limit. Please try again later.",
                retryable=True,
                status_code=429,
            )
        if code == "MODEL_UNAVAILABLE":
            return ClassifiedError(
                type=ErrorType.AI_PROCESSING,
                code="SERVICE_UNAVAILABLE",
                message="AI model temporarily unavailable",
                user_message=(
                    "The AI service is temporarily unavailable. "
                    "Please try again in a few minutes."
                ),
                retryable=True,
                status_code=503,
            )
        status = error_status(error)
        transient = status is None or status == 429 or status >= 500
        return ClassifiedError(
            type=ErrorType.AI_PROCESSING,
            code="PROCESSING_FAILED",
            message=f"AI processing failed: {error_message(error)}",
            user_message=(
                "We couldn't process your image. Please try again or contact "
                "support if the problem persists."
            ),
            # Upstream 4xx means the request itself was rejected
            retryable=transient,
            status_code=502 if transient else 422,
            details=None if status is None else {"upstream_status": status},
        )

    def handle_payment_error(self, error: BaseException) -> ClassifiedError:
        """Failures reported by a payment provider."""
        code = error_code(error)
        if code == "PAYMENT_CANCELLED":
            return ClassifiedError(
                type=ErrorType.PAYMENT,
                code="CANCELLED",
                message="Payment cancelled by user",
                user_message="Payment was cancelled. You can try again when ready.",
                retryable=False,
                status_code=400,
            )
        if code == "INSUFFICIENT_FUNDS":
            return ClassifiedError(
                type=ErrorType.PAYMENT,
                code="INSUFFICIENT_FUNDS",
                message="Insufficient funds",
                user_message=(
                    "Your payment method doesn't have sufficient funds. "
                    "Please try a different payment method."
                ),
                retryable=False,
                status_code=402,
            )
        if code == "INVALID_RECEIPT":
            return ClassifiedError(
                type=ErrorType.PAYMENT,
                code="INVALID_RECEIPT",
                message=f"Receipt rejected: {error_message(error)}",
                user_message=(
                    "We couldn't verify this purchase. Please contact support "
                    "if you were charged."
                ),
                retryable=False,
                status_code=400,
            )
        if code == "PAYMENT_FAILED":
            return ClassifiedError(
                type=ErrorType.PAYMENT,
                code="FAILED",
                message="Payment processing failed",
                user_message=(
                    "Your payment couldn't be processed. Please check your "
                    "payment details and try again."
                ),
                retryable=True,
                status_code=502,
            )
        return ClassifiedError(
            type=ErrorType.PAYMENT,
            code="UNKNOWN_ERROR",
            message=f"Payment error: {error_message(error)}",
            user_message=(
                "There was an issue processing your payment. Please try again "
                "or contact support."
            ),
            retryable=True,
            status_code=502,
        )

    def handle_file_processing_error(self, error: BaseException) -> ClassifiedError:
        """Problems with the uploaded image itself. Never retryable."""
        code = error_code(error)
        if code == "FILE_TOO_LARGE":
            return ClassifiedError(
                type=ErrorType.FILE_PROCESSING,
                code="FILE_TOO_LARGE",
                message="File size exceeds limit",
                user_message="Your image is too large. Please choose a smaller image or compress it.",
                status_code=413,
            )
        if code == "UNSUPPORTED_FORMAT":
            return ClassifiedError(
                type=ErrorType.FILE_PROCESSING,
                code="UNSUPPORTED_FORMAT",
                message="Unsupported file format",
                user_message="This file format isn't supported. Please use JPG, PNG, or HEIC images.",
                status_code=415,
            )
        if code == "CORRUPTED_FILE":
            return ClassifiedError(
                type=ErrorType.FILE_PROCESSING,
                code="CORRUPTED_FILE",
                message="File appears to be corrupted",
                user_message="This image file appears to be damaged. Please try a different image.",
                status_code=422,
            )
        return ClassifiedError(
            type=ErrorType.FILE_PROCESSING,
            code="PROCESSING_FAILED",
            message=f"File processing failed: {error_message(error)}",
            user_message="We couldn't process your image. Please try a different image.",
            status_code=422,
        )

    def handle_authentication_error(self, error: BaseException) -> ClassifiedError:
        code = error_code(error)
        status = error_status(error)
        if status == 403 or code == "FORBIDDEN":
            return ClassifiedError(
                type=ErrorType.AUTHENTICATION,
                code="FORBIDDEN",
                message="Access denied",
                user_message="You don't have permission to perform this action.",
                status_code=403,
            )
        if status == 401 or code in ("UNAUTHORIZED", "INVALID_TOKEN", "TOKEN_EXPIRED"):
            return ClassifiedError(
                type=ErrorType.AUTHENTICATION,
                code="UNAUTHORIZED",
                message="Authentication failed",
                user_message="Your session has expired. Please log in again.",
                status_code=401,
            )
        return ClassifiedError(
            type=ErrorType.AUTHENTICATION,
            code="AUTH_ERROR",
            message=f"Authentication error: {error_message(error)}",
            user_message="There was an issue with your authentication. Please try logging in again.",
            status_code=401,
        )

    def handle_insufficient_credits_error(
        self,
        details: Optional[dict[str, Any]] = None,
    ) -> ClassifiedError:
        return ClassifiedError(
            type=ErrorType.INSUFFICIENT_CREDITS,
            code="INSUFFICIENT_CREDITS",
            message="Insufficient credits",
            user_message=(
                "You don't have enough credits to create a sticker. "
                "Purchase more credits to continue."
            ),
            retryable=False,
            status_code=402,
            details=details or None,
        )

    def handle_generic_error(self, error: BaseException) -> ClassifiedError:
        return ClassifiedError(
            type=ErrorType.UNKNOWN,
            code="UNKNOWN_ERROR",
            message=error_message(error) or "Unknown error occurred",
            user_message=(
                "Something unexpected happened. Please try again or contact "
                "support if the problem persists."
            ),
            retryable=False,
            status_code=500,
        )

    def log_error(self, error: ClassifiedError, context: Optional[str] = None) -> None:
        """Log a classified error with its technical message."""
        logger.error(
            f"[{error.type.value}] {error.code}: {error.message} "
            f"(retryable={error.retryable}, status={error.status_code}, "
            f"context={context}, details={error.details})"
        )


_classifier = ErrorClassifier()


def categorize(error: RawError) -> ClassifiedError:
    """Classify a raw error with the default classifier."""
    return _classifier.categorize(error)
