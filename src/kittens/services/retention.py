"""Retention sweep: removes uploads older than the retention window."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..errors import ImageServingError
from ..logging_config import get_logger
from .image_service import ImageServingService
from .metadata import UploadRecordStore

logger = get_logger(__name__)


@dataclass
class PruneResult:
    """Summary of one retention sweep."""

    cutoff: datetime
    matched: int = 0
    released: int = 0
    release_failures: list[str] = field(default_factory=list)
    deleted: int = 0

    def to_dict(self) -> dict:
        return {
            "cutoff": self.cutoff.isoformat(),
            "matched": self.matched,
            "released": self.released,
            "release_failures": len(self.release_failures),
            "deleted": self.deleted,
        }


def prune_expired_uploads(
    records: UploadRecordStore,
    images: ImageServingService,
    cutoff: datetime,
    log: Any = None,
    timeout: float | None = None,
    dry_run: bool = False,
) -> PruneResult:
    """
    Delete every upload record with upload_time strictly before cutoff.

    Serving resources are released best-effort: a failed release is logged and
    counted and the sweep moves on. All matched keys are then removed in a
    single batch delete.

    Raises:
        DatabaseError: If the query or the batch delete fails. A failed query
            means nothing has been released or deleted.
    """
    log = log or logger
    result = PruneResult(cutoff=cutoff)

    expired = records.query(uploaded_before=cutoff)
    result.matched = len(expired)

    if dry_run:
        log.info("prune_dry_run", **result.to_dict(), keys=[key for key, _ in expired])
        return result

    for key, record in expired:
        try:
            images.release_serving_url(record.object_ref, timeout=timeout)
            result.released += 1
        except ImageServingError as e:
            result.release_failures.append(key)
            log.error("serving_url_release_failed", key=key, object_ref=record.object_ref, error=str(e))

    result.deleted = records.delete_many(key for key, _ in expired)

    log.info("prune_completed", **result.to_dict())
    return result
