"""
FastAPI exception handlers.

WHAT: Turns every failure into the same JSON body:
``{"error", "message", "status_code", "details"}``.

WHY: Clients of the billing API branch on ``error`` and read the ids they
need (entry_id, existing_entry_id, invoice_number) from ``details``,
whether the failure came from the engine, from request validation, or
from the database itself.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from timebill.core.exceptions import AppException

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    error: str,
    message: Any,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "status_code": status_code,
            "details": details,
        },
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render an engine error with its own status code and context.

    Engine errors are expected outcomes (a second timer, a billed entry),
    so they are logged at info level without a traceback.
    """
    logger.info(
        "%s %s -> %s: %s",
        request.method,
        request.url.path,
        exc.__class__.__name__,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Render request validation failures as a 400 with one entry per field.

    Args:
        request: The FastAPI request object
        exc: The Pydantic validation error

    Returns:
        JSONResponse listing field, message and type of each failure
    """
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return error_response(400, "ValidationError", "Request validation failed", {"errors": errors})


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """
    Render a constraint violation that escaped the services as a 409.

    WHY: Services pre-check uniqueness, but two requests can pass the
    check together; the losing insert surfaces here instead of as a 500.
    """
    logger.warning(
        "%s %s -> integrity error: %s",
        request.method,
        request.url.path,
        exc.orig,
    )
    return error_response(409, "ConflictError", "Request conflicts with existing data")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors (unknown path, wrong method) in the common shape."""
    return error_response(exc.status_code, "HTTPException", exc.detail)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last resort for unexpected exceptions.

    The traceback goes to the log under the request id; the client only
    gets a generic 500.
    """
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "InternalServerError", "An unexpected error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Install all handlers on an application.

    Args:
        app: FastAPI application
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
