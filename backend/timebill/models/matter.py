"""
Matter model.

WHY: A matter is the client engagement that time entries and invoices are
billed against. Case management owns the full record; this table holds
only what billing needs to reference and print.
"""

from sqlalchemy import Column, String, Text

from timebill.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Matter(Base, PrimaryKeyMixin, TimestampMixin):
    """Client engagement billed by time entries and invoices."""

    __tablename__ = "matters"

    name = Column(String(255), nullable=False)
    client_name = Column(String(255), nullable=False)
    client_address = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Matter(id={self.id}, name={self.name})>"
