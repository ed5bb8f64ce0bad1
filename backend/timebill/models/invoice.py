"""
Invoice model for billing and payment tracking.

WHAT: SQLAlchemy model for an invoice assembled from draft time entries.

WHY: Invoices are the financial documents that:
1. Lock the time entries they bill (entries become immutable)
2. Track amounts owed on a matter
3. Record payment status and the outstanding balance

HOW: Uses SQLAlchemy 2.0 with:
- Integer cent columns for every amount
- Status enum for the payment workflow
- One-to-many back-reference from time entries (invoice_id)
"""

from datetime import datetime, date
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import (
    Integer,
    String,
    Text,
    DateTime,
    Date,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from timebill.models.base import Base
from timebill.services.billing import utcnow

if TYPE_CHECKING:
    from timebill.models.matter import Matter
    from timebill.models.time_entry import TimeEntry


class InvoiceStatus(str, Enum):
    """
    Invoice payment workflow status.

    - DRAFT: Assembled, not yet sent; may still be voided
    - SENT: Sent to the client for payment
    - PARTIAL: Some payment received, balance outstanding
    - PAID: Balance is zero
    - OVERDUE: Past due without full payment
    """

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    PARTIAL = "partial"
    OVERDUE = "overdue"


PAYABLE_STATUSES = (
    InvoiceStatus.SENT.value,
    InvoiceStatus.PARTIAL.value,
    InvoiceStatus.OVERDUE.value,
)


class Invoice(Base):
    """
    Invoice for a matter.

    WHAT: Aggregates the amounts of the time entries it locks.

    HOW: subtotal is the sum of entry amounts, total adds tax, and
    balance_cents is kept equal to total_cents - amount_paid_cents.
    """

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    matter_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("matters.id"), nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Amounts (cents)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tax_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount_paid_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    balance_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20), default=InvoiceStatus.DRAFT.value, nullable=False
    )

    # Dates
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    matter: Mapped["Matter"] = relationship("Matter", lazy="selectin")
    time_entries: Mapped[List["TimeEntry"]] = relationship(
        "TimeEntry",
        back_populates="invoice",
        lazy="selectin",
        order_by="(TimeEntry.created_at, TimeEntry.id)",
    )

    __table_args__ = (
        Index("ix_invoices_matter_id", "matter_id"),
        Index("ix_invoices_status", "status"),
        CheckConstraint("tax_cents >= 0", name="ck_invoices_tax_non_negative"),
        CheckConstraint(
            "amount_paid_cents >= 0 AND amount_paid_cents <= total_cents",
            name="ck_invoices_paid_within_total",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Invoice(id={self.id}, "
            f"number={self.invoice_number}, "
            f"status={self.status}, "
            f"total_cents={self.total_cents})>"
        )

    @property
    def time_entry_ids(self) -> List[int]:
        """Ids of the locked entries, in invoice line order."""
        return [entry.id for entry in self.time_entries]

    @property
    def is_editable(self) -> bool:
        """Only draft invoices may be voided."""
        return self.status == InvoiceStatus.DRAFT.value
