"""
Error classification for the kittens application.

Every failure raised by a service is a KittensError subclass carrying a
category, severity and machine-readable code. Clients never see these details:
request-blocking failures all surface as the same generic 500 response.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .logging_config import log_error

GENERIC_ERROR_MESSAGE = "Internal Server Error"


class ErrorCategory(Enum):
    STORAGE = "storage"
    DATABASE = "database"
    IMAGE_SERVING = "image_serving"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class KittensError(Exception):
    """
    Base exception for the kittens application.

    Subclasses set ``category``, ``severity`` and ``default_code``. The error
    is logged when constructed, with the traceback of ``original_exception``
    when one is given.
    """

    category = ErrorCategory.UNKNOWN
    severity = ErrorSeverity.MEDIUM
    default_code = "unknown_error"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.code = code or self.default_code
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(UTC)

        log_error(
            self,
            {"category": self.category.value, "severity": self.severity.value, "code": self.code, **self.details},
            cause=original_exception,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "message": str(self),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class StorageError(KittensError):
    """Object storage failures (Cloud Storage calls, upload sessions)."""

    category = ErrorCategory.STORAGE
    severity = ErrorSeverity.HIGH
    default_code = "storage_error"


class DatabaseError(KittensError):
    """Record store failures."""

    category = ErrorCategory.DATABASE
    severity = ErrorSeverity.HIGH
    default_code = "database_error"


class ImageServingError(KittensError):
    """Failures deriving or releasing a display URL for a stored image."""

    category = ErrorCategory.IMAGE_SERVING
    default_code = "image_serving_error"


class ValidationError(KittensError):
    """User input rejected by presence checks."""

    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.LOW
    default_code = "validation_failed"
