"""
Declarative base and shared column mixins.

WHAT: Every table in the billing schema derives from ``Base``. Tables
with an integer id and audit timestamps add the mixins below.

HOW: Index, unique, foreign key and primary key constraints are named
through ``NAMING_CONVENTION`` so Alembic migrations can refer to them
by a stable name on both SQLite and PostgreSQL. Check constraints carry
explicit names on the models themselves.
"""

from sqlalchemy import Column, DateTime, Integer, MetaData
from sqlalchemy.orm import DeclarativeBase

from timebill.services.billing import utcnow

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class TimestampMixin:
    """
    Audit timestamps, naive UTC.

    Uses the billing engine clock so ``created_at`` of an entry and the
    ``started_at`` of its timer agree.
    """

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class PrimaryKeyMixin:
    id = Column(Integer, primary_key=True, index=True)
