"""Landing page with the upload form."""

from flask import Response, render_template, url_for

from ...errors import StorageError
from ..context import AppServices, RequestContext
from .error import serve_error


def handle_root(ctx: RequestContext, services: AppServices) -> Response | str:
    """Mint a single-use upload URL and render the upload form pointed at it."""
    try:
        upload_url = services.storage.mint_upload_url(url_for("upload"), timeout=ctx.remaining_seconds())
    except StorageError as e:
        return serve_error(ctx, e)

    return render_template("index.html", upload_url=upload_url)
