"""Request ID helpers shared by middleware and error handlers."""

from __future__ import annotations

from typing import Optional

from starlette.requests import Request

from app.obs import logging as obs_logging

REQUEST_ID_ATTR = "request_id"


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
    """Return the id bound to this request, falling back to the logging context."""
    if request is not None:
        rid = getattr(request.state, REQUEST_ID_ATTR, None)
        if rid:
            return str(rid)
    return obs_logging.current_request_id() or default
