"""
User model.

WHY: Users are the timekeepers whose role (and, as a legacy fallback, their
personal billable rate) decides the hourly rate applied to their time.
Staff records are managed outside this service; the engine only reads them.
"""

from sqlalchemy import Column, String, Numeric

from timebill.models.base import Base, TimestampMixin, PrimaryKeyMixin


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Timekeeper record.

    WHY: role is free text (Attorney, Paralegal, Staff, ...) so that firms
    can add roles by adding rows to the role rate table, with no code change.
    """

    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(100), nullable=False, default="Staff")

    # Legacy per-user rate in dollars, used only when no role rate applies
    billable_rate_dollars = Column(Numeric(10, 2), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
