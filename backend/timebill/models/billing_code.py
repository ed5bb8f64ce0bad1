"""
Billing code model.

WHAT: Categorisation of work (e.g. "L110 Fact Investigation") that may
carry its own rate policy.

WHY: A code either fixes the hourly rate outright, names a role whose
rate should be charged instead of the timekeeper's own, or does neither
and lets the timekeeper's role decide.

HOW: fixed_rate_cents and override_role are both nullable. A fixed rate of
zero is stored as given but treated as unset when resolving rates.
"""

from typing import Optional

from sqlalchemy import Boolean, Integer, String, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from timebill.models.base import Base, TimestampMixin


class BillingCode(Base, TimestampMixin):
    """Work classification with an optional rate policy."""

    __tablename__ = "billing_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)

    # Rate policy
    fixed_rate_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    override_role: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Inactive codes stay on historical entries but cannot be chosen for new work
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "fixed_rate_cents IS NULL OR fixed_rate_cents >= 0",
            name="ck_billing_codes_non_negative_rate",
        ),
    )

    def __repr__(self) -> str:
        return f"<BillingCode(id={self.id}, code={self.code}, active={self.active})>"
