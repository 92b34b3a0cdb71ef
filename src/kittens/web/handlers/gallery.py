"""Gallery page: every upload, newest first, in rows of three."""

from collections.abc import Sequence
from typing import TypeVar

from flask import render_template

from ...errors import DatabaseError, ImageServingError
from ...models.upload import DisplayItem, UploadRecord
from ..context import AppServices, RequestContext

ROW_SIZE = 3

T = TypeVar("T")


def group_into_rows(items: Sequence[T], row_size: int = ROW_SIZE) -> list[list[T]]:
    """
    Group items into consecutive rows of row_size, preserving order.

    Yields ceil(n / row_size) rows; only the last row may be short.
    """
    if row_size < 1:
        raise ValueError("row_size must be positive")

    rows: list[list[T]] = []
    row: list[T] = []
    for index, item in enumerate(items):
        row.append(item)
        if len(row) == row_size:
            rows.append(row)
            row = []
        elif index == len(items) - 1:
            rows.append(row)
    return rows


def resolve_display_item(ctx: RequestContext, services: AppServices, key: str, record: UploadRecord) -> DisplayItem:
    """Pair a record with its display URL; a failed resolution yields url=None."""
    try:
        url = services.images.resolve_serving_url(record.object_ref, timeout=ctx.remaining_seconds())
    except ImageServingError as e:
        ctx.logger.error("serving_url_failed", key=key, object_ref=record.object_ref, error=str(e))
        url = None

    return DisplayItem(key=key, record=record, url=url)


def handle_gallery(ctx: RequestContext, services: AppServices) -> str:
    """
    Render the gallery.

    A failed record query still renders the page, with no uploads.
    """
    try:
        uploads = services.records.query(newest_first=True)
    except DatabaseError as e:
        ctx.logger.error("gallery_query_failed", error=str(e))
        uploads = []

    items = [resolve_display_item(ctx, services, key, record) for key, record in uploads]
    rows = group_into_rows(items)

    ctx.logger.info("gallery_rendered", uploads_count=len(items), rows_count=len(rows))
    return render_template("gallery.html", uploads=rows)
