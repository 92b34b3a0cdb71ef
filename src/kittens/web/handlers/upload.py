"""Upload ingestion: turns a stored upload plus its kitten name into a record."""

from flask import Response, redirect, url_for

from ...errors import DatabaseError, StorageError, ValidationError
from ...models.upload import StoredObject, UploadRecord
from ..context import AppServices, RequestContext
from .error import serve_error

FILE_FIELD = "file"
NAME_FIELD = "kitten_name"


def validate_upload(
    blobs: dict[str, list[StoredObject]], others: dict[str, list[str]]
) -> tuple[StoredObject, str]:
    """
    Check the parsed upload for a file and a kitten name, in that order.

    Returns:
        tuple: (the first stored file, the kitten name)

    Raises:
        ValidationError: If the file or the name is missing
    """
    files = blobs.get(FILE_FIELD) or []
    if not files:
        raise ValidationError("No file uploaded", code="missing_file")

    names = others.get(NAME_FIELD) or []
    if not names or names[0] == "":
        raise ValidationError("No kitten name specified", code="missing_name")

    return files[0], names[0]


def handle_upload(ctx: RequestContext, services: AppServices) -> Response:
    """
    Persist a record for a successful upload and redirect to the gallery.

    Invalid submissions go back to the form. Objects already stored for an
    invalid submission are left orphaned.
    """
    try:
        blobs, others = services.storage.parse_upload(ctx.request, timeout=ctx.remaining_seconds())
    except StorageError as e:
        return serve_error(ctx, e)

    try:
        stored, name = validate_upload(blobs, others)
    except ValidationError as e:
        ctx.logger.warning("upload_rejected", reason=e.code, message=str(e))
        return redirect(url_for("root"), code=302)

    record = UploadRecord.create_new(name=name, object_ref=stored.object_ref, upload_time=services.now())
    key = services.records.new_key()

    try:
        services.records.put(key, record)
    except DatabaseError as e:
        return serve_error(ctx, e)

    ctx.logger.info("upload_saved", key=key, name=name, object_ref=stored.object_ref, size=stored.size)
    return redirect(url_for("gallery"), code=302)
