"""
ORM models for the billing schema.

Importing this package registers every table on ``Base.metadata``,
which Alembic and the test fixtures rely on.
"""

from timebill.models.base import Base, TimestampMixin, PrimaryKeyMixin
from timebill.models.user import User
from timebill.models.matter import Matter
from timebill.models.billing_code import BillingCode
from timebill.models.role_rate import RoleRate
from timebill.models.time_entry import TimeEntry, TimeEntryStatus
from timebill.models.invoice import Invoice, InvoiceStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "User",
    "Matter",
    "BillingCode",
    "RoleRate",
    "TimeEntry",
    "TimeEntryStatus",
    "Invoice",
    "InvoiceStatus",
]
