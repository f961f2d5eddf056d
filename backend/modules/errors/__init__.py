"""
Error classification module.

Normalizes raw failures into one closed taxonomy before they cross a
component boundary.

Public API:
- ErrorClassifier / categorize: Raw error -> ClassifiedError
- ClassifiedError: Normalized error with retryability and user messaging
- ErrorType: Closed set of error categories
- ClassifiedServiceError: Exception wrapping a ClassifiedError
"""

from .classifier import ErrorClassifier, categorize
from .exceptions import ClassifiedServiceError
from .models import ClassifiedError, ErrorType

__all__ = [
    "ErrorClassifier",
    "categorize",
    "ClassifiedServiceError",
    "ClassifiedError",
    "ErrorType",
]
