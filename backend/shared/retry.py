"""
Bounded retry with exponential backoff for external calls.

Every call into an external collaborator (AI generation, receipt
validation) goes through with_retry. Callers pick a retry predicate that
decides, given a failure, whether another attempt is worthwhile.

Usage:
    result = await with_retry(
        lambda: client.predict(image, prompt),
        RetryOptions(retry_condition=ai_service_error),
    )
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from .config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryCondition = Callable[[BaseException], bool]
SleepFunc = Callable[[float], Awaitable[Any]]


def _always(error: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryOptions:
    """Retry configuration. Delays are in seconds."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    retry_condition: RetryCondition = field(default=_always)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")

    @classmethod
    def from_settings(cls, retry_condition: RetryCondition = _always) -> "RetryOptions":
        """Build options from the application settings."""
        settings = get_settings()
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
            backoff_factor=settings.retry_backoff_factor,
            retry_condition=retry_condition,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given (1-indexed) failed attempt."""
        return min(self.base_delay * self.backoff_factor ** (attempt - 1), self.max_delay)


class RetryError(Exception):
    """Raised when an operation still fails after all allowed attempts."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Operation failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """
    Run an async operation with bounded retries.

    Args:
        operation: Zero-argument callable returning an awaitable
        options: Retry configuration (defaults to RetryOptions())
        sleep: Awaitable sleep function, injectable for tests

    Returns:
        The operation's result

    Raises:
        The original error if retry_condition rejects it
        RetryError: After max_attempts failed attempts
    """
    options = options or RetryOptions()

    for attempt in range(1, options.max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if not options.retry_condition(e):
                raise

            if attempt >= options.max_attempts:
                raise RetryError(attempt, e) from e

            delay = options.delay_for(attempt)
            logger.warning(
                f"Attempt {attempt}/{options.max_attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            await sleep(delay)

    # Unreachable: the loop either returns or raises
    raise AssertionError("retry loop exited without result")


# Inspection helpers shared with the error classifier


def error_status(error: BaseException) -> Optional[int]:
    """Extract an HTTP-style status from a raw error, if it carries one."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def error_code(error: BaseException) -> Optional[str]:
    """Extract an explicit error code from a raw error, if it carries one."""
    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code
    return None


def error_message(error: BaseException) -> str:
    """Extract a lower-level message from a raw error."""
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error)


def is_connectivity_error(error: BaseException) -> bool:
    """True for transport-level failures (no response was received)."""
    if isinstance(error, (httpx.TransportError, asyncio.TimeoutError, ConnectionError)):
        return True
    return error_code(error) == "NETWORK_ERROR"


# Retry predicates

_RATE_LIMIT_CODES = {"RATE_LIMITED", "QUOTA_EXCEEDED", "RATE_LIMIT_EXCEEDED"}


def network_error(error: BaseException) -> bool:
    """Retry connectivity failures, timeouts and 5xx responses."""
    if is_connectivity_error(error):
        return True
    message = error_message(error).lower()
    if "network" in message or "timeout" in message:
        return True
    status = error_status(error)
    return status is not None and status >= 500


def ai_service_error(error: BaseException) -> bool:
    """
    Retry 5xx and rate-limit signals from the AI service.

    Safety blocks and other 4xx responses are never retried.
    """
    code = error_code(error)
    if code == "SAFETY_BLOCK":
        return False
    if code in _RATE_LIMIT_CODES:
        return True
    if is_connectivity_error(error):
        return True
    status = error_status(error)
    if status is not None:
        return status == 429 or status >= 500
    return "temporarily unavailable" in error_message(error).lower()


def payment_error(error: BaseException) -> bool:
    """Retry only network/5xx failures, never business-validation failures."""
    if is_connectivity_error(error):
        return True
    status = error_status(error)
    return status is not None and status >= 500
