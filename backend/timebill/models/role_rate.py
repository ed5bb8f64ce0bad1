"""
Role rate model.

WHAT: One row per role with its hourly rate in cents.

WHY: Rates are set per role rather than per person so a rate change
applies firm-wide. The table is sparse: roles with no row fall through
to the next tier of rate resolution.
"""

from sqlalchemy import Integer, String, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from timebill.models.base import Base, TimestampMixin


class RoleRate(Base, TimestampMixin):
    """Hourly rate in cents for a role."""

    __tablename__ = "role_rates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    role: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    rate_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("rate_cents >= 0", name="ck_role_rates_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<RoleRate(role={self.role}, rate_cents={self.rate_cents})>"
