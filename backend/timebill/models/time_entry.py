"""
Time Entry model.

WHAT: SQLAlchemy model for a single unit of billable work.

WHY: Time entries are the source of every billed amount. Each one records:
1. Who worked, on which matter, under which billing code
2. Raw and six-minute-rounded durations
3. A snapshot of the rate applied and the resulting amount in cents
4. Its place in the lifecycle (running, draft, billed, written off)

HOW: Uses SQLAlchemy 2.0 with:
- A partial unique index allowing one running entry per user
- Check constraints keeping durations and money non-negative
- Invoice back-reference set when the entry is billed
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Index,
    CheckConstraint,
    text,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from timebill.models.base import Base
from timebill.services.billing import utcnow

if TYPE_CHECKING:
    from timebill.models.user import User
    from timebill.models.matter import Matter
    from timebill.models.billing_code import BillingCode
    from timebill.models.invoice import Invoice


class TimeEntryStatus(str, Enum):
    """
    Time entry status.

    WHY: Status determines what actions can be taken:
    - RUNNING: Timer in progress; money is computed only at stop
    - DRAFT: Complete and billable; may be edited, deleted or invoiced
    - BILLED: Locked by an invoice; immutable
    - WRITTEN_OFF: Administratively excluded from billing; immutable
    """

    RUNNING = "running"
    DRAFT = "draft"
    BILLED = "billed"
    WRITTEN_OFF = "written_off"


IMMUTABLE_STATUSES = (TimeEntryStatus.BILLED.value, TimeEntryStatus.WRITTEN_OFF.value)

RUNNING_WHERE = text("status = 'running'")


class TimeEntry(Base):
    """
    Time tracking entry.

    WHAT: Records time spent on a matter and what it bills for.

    HOW: Each entry has:
    - raw_minutes (from the timer or manual input) and billed_minutes
      (rounded up to six-minute increments)
    - rate_cents_applied, the hourly rate resolved when the entry was
      priced, and amount_cents derived from it
    - invoice_id once an invoice has locked it
    """

    __tablename__ = "time_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    matter_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("matters.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    billing_code_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("billing_codes.id"), nullable=True
    )
    tags: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    # Timer bounds (manual entries may have neither)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Duration
    raw_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    billed_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Money
    rate_cents_applied: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20), default=TimeEntryStatus.DRAFT.value, nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Invoice linking
    invoice_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("invoices.id"), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", lazy="selectin")
    matter: Mapped["Matter"] = relationship("Matter", lazy="selectin")
    billing_code: Mapped[Optional["BillingCode"]] = relationship(
        "BillingCode", lazy="selectin"
    )
    invoice: Mapped[Optional["Invoice"]] = relationship(
        "Invoice", back_populates="time_entries"
    )

    # Indexes and constraints
    __table_args__ = (
        Index("ix_time_entries_matter_id", "matter_id"),
        Index("ix_time_entries_user_id", "user_id"),
        Index("ix_time_entries_status", "status"),
        Index("ix_time_entries_invoice_id", "invoice_id"),
        Index("ix_time_entries_created_at", "created_at"),
        # At most one running entry per user, enforced by the database
        Index(
            "uq_time_entries_one_running_per_user",
            "user_id",
            unique=True,
            sqlite_where=RUNNING_WHERE,
            postgresql_where=RUNNING_WHERE,
        ),
        CheckConstraint("raw_minutes >= 0", name="ck_time_entries_raw_minutes"),
        CheckConstraint("billed_minutes >= 0", name="ck_time_entries_billed_minutes"),
        CheckConstraint("amount_cents >= 0", name="ck_time_entries_amount_cents"),
        CheckConstraint(
            "ended_at IS NULL OR started_at IS NULL OR ended_at >= started_at",
            name="ck_time_entries_valid_time_range",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<TimeEntry(id={self.id}, "
            f"user_id={self.user_id}, "
            f"status={self.status}, "
            f"billed_minutes={self.billed_minutes})>"
        )

    @property
    def is_running(self) -> bool:
        return self.status == TimeEntryStatus.RUNNING.value

    @property
    def is_immutable(self) -> bool:
        """Billed and written-off entries reject edits and deletes."""
        return self.status in IMMUTABLE_STATUSES
