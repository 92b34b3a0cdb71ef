"""Per-request context and the service container handed to every handler."""

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from ..logging_config import get_logger
from ..services.image_service import ImageServingService
from ..services.metadata import UploadRecordStore
from ..services.storage import StorageService

# Floor for timeouts derived from an exhausted deadline
MIN_TIMEOUT_SECONDS = 1.0


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class AppServices:
    """External collaborators and policy shared by all handlers."""

    storage: StorageService
    records: UploadRecordStore
    images: ImageServingService
    retention_window: timedelta = timedelta(minutes=5)
    request_timeout: timedelta = timedelta(seconds=60)
    clock: Callable[[], datetime] = field(default=utc_now)

    def now(self) -> datetime:
        """Current server time (UTC)."""
        return self.clock()


@dataclass
class RequestContext:
    """State scoped to one HTTP request."""

    request: Any
    logger: Any
    deadline: datetime
    request_id: str

    def remaining_seconds(self) -> float:
        """Seconds left before the deadline, never below MIN_TIMEOUT_SECONDS."""
        remaining = (self.deadline - utc_now()).total_seconds()
        return max(MIN_TIMEOUT_SECONDS, remaining)


def new_request_context(request: Any, timeout: timedelta) -> RequestContext:
    """
    Build the context for an incoming request.

    The logger is bound to the request id, method and path so every event a
    handler emits can be correlated.
    """
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    deadline = utc_now() + timeout
    logger = get_logger("kittens.web").bind(
        request_id=request_id,
        method=request.method,
        path=request.path,
    )
    return RequestContext(request=request, logger=logger, deadline=deadline, request_id=request_id)
