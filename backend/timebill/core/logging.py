"""
Logging configuration.

WHAT: Installs a single stream handler on the root logger whose records
carry the id of the HTTP request that produced them.

WHY: Timer and invoice operations run inside many concurrent requests;
the request id (also returned to the client as X-Request-ID) is what ties
a log line back to the call that caused it.

HOW: A logging.Filter copies the request id from the request-context
ContextVar onto every record. Outside a request the id is "-".
"""

import logging
from typing import Optional

from timebill.core.config import settings
from timebill.middleware.request_context import get_request_context

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Attach ``request_id`` to each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_request_context()
        record.request_id = ctx.request_id if ctx else "-"
        return True


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for the service.

    Safe to call more than once; an existing handler installed by this
    function is replaced rather than duplicated.

    Args:
        level: Log level name (defaults to settings.LOG_LEVEL)
    """
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())

    for handler in list(root.handlers):
        if getattr(handler, "_timebill_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler._timebill_handler = True
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)
