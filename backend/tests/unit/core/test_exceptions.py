"""
Tests for custom exception hierarchy.

WHY: Comprehensive exception testing ensures:
1. Exceptions serialize to the common error body
2. HTTP status codes map correctly
3. Context data (entry ids, invoice numbers) reaches the client
4. Exception handlers work as expected
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError

from timebill.core.exceptions import (
    AppException,
    BillingCodeNotFoundError,
    ConflictError,
    ImmutableError,
    InvalidSelectionError,
    InvoiceNotFoundError,
    MatterNotFoundError,
    NotFoundError,
    TimeEntryNotFoundError,
    TimerAlreadyRunningError,
    TimerNotRunningError,
    UserNotFoundError,
    ValidationError,
)
from timebill.core.exception_handlers import register_exception_handlers


class TestAppException:
    """Test base AppException class."""

    def test_default_message(self):
        exc = AppException()
        assert exc.message == "An unexpected error occurred"
        assert exc.status_code == 500

    def test_custom_message_and_status(self):
        exc = AppException(message="Custom error message", status_code=418)
        assert exc.message == "Custom error message"
        assert exc.status_code == 418
        assert str(exc) == "Custom error message"

    def test_to_dict_basic(self):
        exc = AppException(message="Test error", entry_id=123)
        result = exc.to_dict()

        assert result == {
            "error": "AppException",
            "message": "Test error",
            "status_code": 500,
            "details": {"entry_id": 123},
        }

    def test_to_dict_drops_unset_context(self):
        """
        Verify context keys bound to None are left out of details.

        WHY: Raise sites pass optional ids straight through; clients only
        see the ones that identify the offending record.
        """
        exc = AppException(
            message="Test error",
            invoice_id=7,
            entry_id=None,
            reason="not_draft",
        )
        details = exc.to_dict()["details"]

        assert details == {"invoice_id": 7, "reason": "not_draft"}
        assert exc.context["entry_id"] is None

    def test_to_dict_without_context(self):
        assert AppException().to_dict()["details"] is None
        assert AppException(entry_id=None).to_dict()["details"] is None


class TestExceptionStatusCodes:
    """Each error kind maps to its HTTP status."""

    @pytest.mark.parametrize(
        "exc_class, status_code",
        [
            (ValidationError, 400),
            (InvalidSelectionError, 400),
            (NotFoundError, 404),
            (TimeEntryNotFoundError, 404),
            (TimerNotRunningError, 404),
            (InvoiceNotFoundError, 404),
            (BillingCodeNotFoundError, 404),
            (MatterNotFoundError, 404),
            (UserNotFoundError, 404),
            (ConflictError, 409),
            (TimerAlreadyRunningError, 409),
            (ImmutableError, 409),
        ],
    )
    def test_status_code(self, exc_class, status_code):
        exc = exc_class()
        assert exc.status_code == status_code
        assert isinstance(exc, AppException)

    def test_not_found_family(self):
        assert issubclass(TimerNotRunningError, NotFoundError)
        assert issubclass(InvoiceNotFoundError, NotFoundError)

    def test_timer_conflict_is_a_conflict(self):
        assert issubclass(TimerAlreadyRunningError, ConflictError)

    def test_invalid_selection_carries_entry_id(self):
        exc = InvalidSelectionError(message="Entry 5 is billed", entry_id=5, reason="not_draft")
        assert exc.to_dict()["details"] == {"entry_id": 5, "reason": "not_draft"}


class _Body(BaseModel):
    minutes: int = Field(..., gt=0)


def _app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/timer-conflict")
    async def timer_conflict():
        raise TimerAlreadyRunningError(user_id=3, existing_entry_id=11)

    @app.get("/missing-invoice")
    async def missing_invoice():
        raise InvoiceNotFoundError(invoice_id=99)

    @app.post("/entries")
    async def create_entry(body: _Body):
        return {"minutes": body.minutes}

    @app.get("/duplicate-number")
    async def duplicate_number():
        raise IntegrityError(
            "INSERT INTO invoices", {}, Exception("UNIQUE constraint failed: invoices.invoice_number")
        )

    @app.get("/crash")
    async def crash():
        raise RuntimeError("boom")

    return app


class TestExceptionHandlers:
    """Handlers render errors in the common JSON shape."""

    def test_app_exception_handler(self):
        client = TestClient(_app())

        response = client.get("/timer-conflict")

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "TimerAlreadyRunningError"
        assert body["details"] == {"user_id": 3, "existing_entry_id": 11}

    def test_not_found_handler(self):
        response = TestClient(_app()).get("/missing-invoice")

        assert response.status_code == 404
        assert response.json()["message"] == "Invoice not found"

    def test_request_validation_is_a_400(self):
        response = TestClient(_app()).post("/entries", json={"minutes": 0})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "ValidationError"
        fields = [e["field"] for e in body["details"]["errors"]]
        assert fields == ["body.minutes"]

    def test_integrity_error_is_a_conflict(self):
        """
        Test that a constraint violation that slipped past the service
        pre-checks is reported as a 409, not a 500.
        """
        response = TestClient(_app()).get("/duplicate-number")

        assert response.status_code == 409
        assert response.json()["error"] == "ConflictError"

    def test_unknown_route_uses_common_shape(self):
        response = TestClient(_app()).get("/no-such-route")

        assert response.status_code == 404
        assert response.json()["error"] == "HTTPException"

    def test_unhandled_error_is_a_generic_500(self):
        client = TestClient(_app(), raise_server_exceptions=False)

        response = client.get("/crash")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "InternalServerError"
        assert "boom" not in body["message"]
