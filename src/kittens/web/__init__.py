"""HTTP surface of the kittens application."""

from .app import ROUTES, Route, create_app
from .context import AppServices, RequestContext, new_request_context

__all__ = ["ROUTES", "Route", "create_app", "AppServices", "RequestContext", "new_request_context"]
