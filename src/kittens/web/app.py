"""
Flask application factory.

Routes are declared in the ROUTES table and registered on the application
built by create_app; nothing is registered at import time.
"""

from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import Flask, Response, g, request
from werkzeug.exceptions import InternalServerError

from ..config import Config, get_config
from ..errors import GENERIC_ERROR_MESSAGE, KittensError
from ..logging_config import REQUEST_ID_KEY, get_logger
from .context import AppServices, RequestContext, new_request_context
from .handlers import handle_gallery, handle_prune, handle_root, handle_upload

logger = get_logger(__name__)

Handler = Callable[[RequestContext, AppServices], Any]


@dataclass(frozen=True)
class Route:
    """One entry of the routing table."""

    path: str
    endpoint: str
    handler: Handler
    methods: tuple[str, ...] = ("GET",)


ROUTES: tuple[Route, ...] = (
    Route("/", "root", handle_root),
    Route("/upload", "upload", handle_upload, ("POST",)),
    Route("/gallery", "gallery", handle_gallery),
    Route("/prune", "prune", handle_prune),
)


def _bind_handler(handler: Handler, services: AppServices) -> Callable[[], Any]:
    """Wrap a handler as a Flask view that builds the request context."""

    @wraps(handler)
    def view() -> Any:
        ctx = new_request_context(request, services.request_timeout)
        g.setdefault(REQUEST_ID_KEY, ctx.request_id)
        return handler(ctx, services)

    return view


def _generic_error_response(error: Exception) -> Response:
    original = getattr(error, "original_exception", None) or error
    logger.error(
        "unhandled_request_error",
        path=request.path,
        error_type=type(original).__name__,
        error=str(original),
    )
    return Response(GENERIC_ERROR_MESSAGE, status=500, mimetype="text/plain")


def create_app(
    services: AppServices,
    config: Config | None = None,
    routes: tuple[Route, ...] = ROUTES,
) -> Flask:
    """
    Build the Flask application.

    Args:
        services: Collaborators handed to every handler
        config: Configuration (defaults to the global instance)
        routes: Routing table to register

    Returns:
        Flask: Configured application
    """
    config = config or get_config()

    app = Flask(__name__, template_folder="templates")
    app.config["MAX_CONTENT_LENGTH"] = config.max_upload_bytes

    for route in routes:
        app.add_url_rule(
            route.path,
            endpoint=route.endpoint,
            view_func=_bind_handler(route.handler, services),
            methods=list(route.methods),
        )

    app.register_error_handler(KittensError, _generic_error_response)
    app.register_error_handler(InternalServerError, _generic_error_response)

    logger.info("application_created", routes=[route.path for route in routes])
    return app
