"""Maintenance trigger for the retention sweep."""

from flask import Response

from ...errors import DatabaseError
from ...services.retention import prune_expired_uploads
from ..context import AppServices, RequestContext
from .error import serve_error


def handle_prune(ctx: RequestContext, services: AppServices) -> Response:
    """Delete uploads older than the retention window; answers 204 on success."""
    cutoff = services.now() - services.retention_window

    try:
        prune_expired_uploads(
            services.records,
            services.images,
            cutoff,
            log=ctx.logger,
            timeout=ctx.remaining_seconds(),
        )
    except DatabaseError as e:
        return serve_error(ctx, e)

    return Response(status=204)
