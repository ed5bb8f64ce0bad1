"""
Request context middleware.

WHAT: Gives every HTTP request an id, records who sent it, and logs one
access line per request when it completes.

WHY: A timer that would not start or an invoice that would not assemble
is traced by the id the client received in X-Request-ID. Every log line
written while the request ran carries the same id (see core/logging.py).

HOW: The context lives in a ContextVar for the duration of the request,
so services and the logging filter can read it without the Request
object. It is also exposed as ``request.state.context``.
"""

import logging
import re
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Caller ids end up in log lines, so only short opaque tokens are reused
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

# Checked in order; a proxy closest to us sets X-Real-IP
_CLIENT_IP_HEADERS = ("X-Real-IP", "X-Forwarded-For")


@dataclass(frozen=True)
class RequestContext:
    """Request-scoped data available to services and log records."""

    request_id: str
    ip_address: str
    path: str
    method: str
    started: float = field(default_factory=time.perf_counter, compare=False)

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000


_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """Context of the request being handled, or None outside a request."""
    return _request_context.get()


def get_client_ip(request: Request) -> str:
    """
    Best-effort client address.

    Proxy headers win over the socket peer; for X-Forwarded-For the first
    hop is the original client.

    Returns:
        IP address string, or "unknown"
    """
    for header in _CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value:
            return value.split(",")[0].strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def resolve_request_id(supplied: Optional[str]) -> str:
    """
    Reuse a well-formed caller id, otherwise mint a UUID4.

    Args:
        supplied: Value of the incoming X-Request-ID header

    Returns:
        Request id to use for this request
    """
    if supplied and _VALID_REQUEST_ID.match(supplied):
        return supplied
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Sets the request context and echoes the id in X-Request-ID."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context = RequestContext(
            request_id=resolve_request_id(request.headers.get(REQUEST_ID_HEADER)),
            ip_address=get_client_ip(request),
            path=request.url.path,
            method=request.method,
        )
        request.state.context = context
        token = _request_context.set(context)

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = context.request_id
            logger.info(
                "%s %s %s %.1fms",
                context.method,
                context.path,
                response.status_code,
                context.elapsed_ms(),
            )
            return response
        finally:
            _request_context.reset(token)
