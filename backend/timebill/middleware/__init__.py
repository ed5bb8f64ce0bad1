"""
Middleware package.

WHY: Request correlation applies to every route, so it is installed once
on the application instead of per router.
"""

from timebill.middleware.request_context import (
    REQUEST_ID_HEADER,
    RequestContext,
    RequestContextMiddleware,
    get_client_ip,
    get_request_context,
)

__all__ = [
    "REQUEST_ID_HEADER",
    "RequestContext",
    "RequestContextMiddleware",
    "get_client_ip",
    "get_request_context",
]
