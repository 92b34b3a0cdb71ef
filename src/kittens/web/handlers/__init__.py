"""Request handlers. Each takes (RequestContext, AppServices) and returns a response."""

from .error import serve_error
from .gallery import group_into_rows, handle_gallery
from .prune import handle_prune
from .root import handle_root
from .upload import handle_upload, validate_upload

__all__ = [
    "handle_root",
    "handle_upload",
    "handle_gallery",
    "handle_prune",
    "serve_error",
    "group_into_rows",
    "validate_upload",
]
