"""Generic error responses shared by the request handlers."""

from flask import Response

from ...errors import GENERIC_ERROR_MESSAGE
from ..context import RequestContext


def serve_error(ctx: RequestContext, error: Exception) -> Response:
    """
    Log an upstream failure and answer with the generic 500 response.

    The client never learns which collaborator failed.
    """
    ctx.logger.error(
        "request_failed",
        error_type=type(error).__name__,
        error=str(error),
        code=getattr(error, "code", None),
    )
    return Response(GENERIC_ERROR_MESSAGE, status=500, mimetype="text/plain")
