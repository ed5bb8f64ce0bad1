"""
Billing engine errors.

WHAT: One exception class per failure a caller can act on, each mapped
to an HTTP status. The exception handler renders them as
``{"error", "message", "status_code", "details"}``.

WHY: Errors are reported, never retried, except for the single
optimistic retry in the timer registry and the invoice assembler.
Keyword arguments passed at the raise site (``entry_id``, ``reason``,
``existing_entry_id``) become ``details`` so clients can point at the
offending record.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Root of the engine's error hierarchy.

    Subclasses set ``status_code`` and ``default_message``; a raise site
    may override either and attach context.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context

    @property
    def details(self) -> Optional[Dict[str, Any]]:
        """Context with unset values dropped, or None when nothing is left."""
        kept = {key: value for key, value in self.context.items() if value is not None}
        return kept or None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }


# ============================================================================
# Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    Covers missing descriptions, non-positive durations, inactive billing
    codes, empty invoice selections and duplicate invoice numbers.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


class InvalidSelectionError(AppException):
    """
    Raised when an invoice selection contains an ineligible time entry.

    WHY: An entry that is missing, belongs to another matter, or is no
    longer a draft fails the whole assembly. The offending id is carried
    in the context as ``entry_id``.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Selection contains a time entry that cannot be invoiced"


# ============================================================================
# Lookup Exceptions
# ============================================================================


class NotFoundError(AppException):
    """
    Raised when a referenced record does not exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class TimeEntryNotFoundError(NotFoundError):
    default_message = "Time entry not found"


class TimerNotRunningError(NotFoundError):
    """
    Raised when stopping an entry that is not running.

    WHY: A second stop on the same entry must fail instead of silently
    recomputing; from the caller's view there is no running timer to stop.
    """

    default_message = "No running timer found for this entry"


class InvoiceNotFoundError(NotFoundError):
    default_message = "Invoice not found"


class BillingCodeNotFoundError(NotFoundError):
    default_message = "Billing code not found"


class MatterNotFoundError(NotFoundError):
    default_message = "Matter not found"


class UserNotFoundError(NotFoundError):
    default_message = "User not found"


# ============================================================================
# State Exceptions
# ============================================================================


class ConflictError(AppException):
    """
    Raised when an operation would violate a running-timer invariant.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Operation conflicts with current state"


class TimerAlreadyRunningError(ConflictError):
    """Raised when a user starts a timer while another one is running."""

    default_message = "A timer is already running for this user"


class ImmutableError(AppException):
    """
    Raised when mutating a record whose state forbids it.

    WHY: Billed and written-off entries are part of the audit trail, and
    only draft invoices may be voided.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Record can no longer be modified"
