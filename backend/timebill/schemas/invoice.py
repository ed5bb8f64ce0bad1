"""
Invoice Pydantic Schemas.

WHAT: Request/Response models for invoice endpoints.

WHY: Validates assembly and payment input, and serializes invoices with
their locked time entries.
"""

from datetime import date, datetime
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, Field, field_validator

from timebill.schemas.time_entry import TimeEntryResponse


class InvoiceStatus(str, Enum):
    """Invoice status values."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    PARTIAL = "partial"
    OVERDUE = "overdue"


# ============================================================================
# Request Schemas
# ============================================================================


class InvoiceFromEntriesRequest(BaseModel):
    """
    Request schema for assembling an invoice from draft time entries.

    WHAT: The matter, the selected entries and the invoice header.
    """

    matter_id: int = Field(..., description="Matter being invoiced")
    time_entry_ids: List[int] = Field(
        ..., min_length=1, description="Draft time entries to bill"
    )
    invoice_number: str = Field(
        ..., min_length=1, max_length=50, description="Unique invoice number"
    )
    issue_date: Optional[date] = Field(None, description="Issue date (default today)")
    due_date: Optional[date] = Field(
        None, description="Due date (default issue date plus payment terms)"
    )
    tax_cents: int = Field(default=0, ge=0, description="Tax amount, in cents")
    description: Optional[str] = Field(None, max_length=2000, description="Invoice notes")

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v, info):
        """Ensure due_date is not before issue_date."""
        issue_date = info.data.get("issue_date")
        if v and issue_date and v < issue_date:
            raise ValueError("Due date cannot be before issue date")
        return v


class PaymentRequest(BaseModel):
    """Request schema for recording a payment received."""

    amount_cents: int = Field(..., gt=0, description="Amount received, in cents")


# ============================================================================
# Response Schemas
# ============================================================================


class InvoiceResponse(BaseModel):
    """
    Response schema for a single invoice.

    WHAT: Invoice header, amounts in cents, and its line entries.
    """

    id: int = Field(..., description="Invoice ID")
    invoice_number: str = Field(..., description="Invoice number")
    matter_id: int = Field(..., description="Matter ID")
    matter_name: Optional[str] = Field(None, description="Matter name")
    client_name: Optional[str] = Field(None, description="Client billed")
    description: Optional[str] = Field(None, description="Invoice notes")

    # Amounts
    subtotal_cents: int = Field(..., description="Sum of entry amounts")
    tax_cents: int = Field(..., description="Tax")
    total_cents: int = Field(..., description="Subtotal plus tax")
    amount_paid_cents: int = Field(..., description="Payments received")
    balance_cents: int = Field(..., description="Total minus payments")

    status: InvoiceStatus = Field(..., description="Invoice status")

    # Dates
    issue_date: date = Field(..., description="Issue date")
    due_date: Optional[date] = Field(None, description="Due date")
    sent_at: Optional[datetime] = Field(None, description="When sent")
    paid_at: Optional[datetime] = Field(None, description="When fully paid")

    time_entry_ids: List[int] = Field(default_factory=list, description="Locked entry IDs")
    time_entries: List[TimeEntryResponse] = Field(
        default_factory=list, description="Locked entries in line order"
    )

    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: Optional[datetime] = Field(None, description="Updated timestamp")

    model_config = {"from_attributes": True}


class InvoiceSummaryResponse(BaseModel):
    """Invoice without its line entries, for listings."""

    id: int = Field(..., description="Invoice ID")
    invoice_number: str = Field(..., description="Invoice number")
    matter_id: int = Field(..., description="Matter ID")
    total_cents: int = Field(..., description="Total")
    balance_cents: int = Field(..., description="Outstanding balance")
    status: InvoiceStatus = Field(..., description="Invoice status")
    issue_date: date = Field(..., description="Issue date")
    due_date: Optional[date] = Field(None, description="Due date")

    model_config = {"from_attributes": True}


class InvoiceListResponse(BaseModel):
    """Paginated list of invoices."""

    items: List[InvoiceSummaryResponse] = Field(..., description="Invoices")
    total: int = Field(..., description="Invoices matching the filters")
    skip: int = Field(..., description="Offset used")
    limit: int = Field(..., description="Limit used")

