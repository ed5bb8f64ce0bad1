"""
Row builders for tests.

Each factory fills in plausible defaults, takes keyword overrides, and
commits, returning the refreshed row.
"""

from datetime import datetime
from decimal import Decimal
from itertools import count
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from timebill.models.billing_code import BillingCode
from timebill.models.matter import Matter
from timebill.models.role_rate import RoleRate
from timebill.models.time_entry import TimeEntry, TimeEntryStatus
from timebill.models.user import User
from timebill.services import billing

_sequence = count(1)


class UserFactory:
    """
    Factory for creating User (timekeeper) test instances.
    """

    @staticmethod
    async def create(
        session: AsyncSession,
        name: str = "Test User",
        email: Optional[str] = None,
        role: str = "Staff",
        billable_rate_dollars: Optional[Decimal] = None,
    ) -> User:
        """
        Create a user for testing.

        Args:
            session: Database session
            name: Display name
            email: Email (unique; generated when omitted)
            role: Role name matched against the role rate table
            billable_rate_dollars: Legacy personal rate

        Returns:
            Created User instance
        """
        user = User(
            name=name,
            email=email or f"user{next(_sequence)}@example.com",
            role=role,
            billable_rate_dollars=billable_rate_dollars,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


class MatterFactory:
    """Factory for creating Matter test instances."""

    @staticmethod
    async def create(
        session: AsyncSession,
        name: str = "Smith v. Jones",
        client_name: str = "Alex Smith",
        client_address: Optional[str] = "12 Elm Street, Springfield",
    ) -> Matter:
        matter = Matter(name=name, client_name=client_name, client_address=client_address)
        session.add(matter)
        await session.commit()
        await session.refresh(matter)
        return matter


class RoleRateFactory:
    """Factory for creating RoleRate test instances."""

    @staticmethod
    async def create(
        session: AsyncSession,
        role: str = "Attorney",
        rate_cents: int = 35000,
    ) -> RoleRate:
        role_rate = RoleRate(role=role, rate_cents=rate_cents)
        session.add(role_rate)
        await session.commit()
        await session.refresh(role_rate)
        return role_rate


class BillingCodeFactory:
    """Factory for creating BillingCode test instances."""

    @staticmethod
    async def create(
        session: AsyncSession,
        code: Optional[str] = None,
        label: str = "General",
        fixed_rate_cents: Optional[int] = None,
        override_role: Optional[str] = None,
        active: bool = True,
    ) -> BillingCode:
        """
        Create a billing code for testing.

        Args:
            session: Database session
            code: Unique code (generated when omitted)
            label: Display label
            fixed_rate_cents: Optional fixed hourly rate in cents
            override_role: Optional role whose rate applies instead
            active: Whether selectable for new entries

        Returns:
            Created BillingCode instance
        """
        billing_code = BillingCode(
            code=code or f"C{next(_sequence):03d}",
            label=label,
            fixed_rate_cents=fixed_rate_cents,
            override_role=override_role,
            active=active,
        )
        session.add(billing_code)
        await session.commit()
        await session.refresh(billing_code)
        return billing_code


class TimeEntryFactory:
    """
    Factory for creating TimeEntry test instances.

    WHY: Most invoice tests need draft entries with known amounts; the
    factory prices them with the same primitives the service uses.
    """

    @staticmethod
    async def create(
        session: AsyncSession,
        matter: Matter,
        user: User,
        raw_minutes: int = 60,
        rate_cents: int = 10000,
        status: str = TimeEntryStatus.DRAFT.value,
        description: str = "Research",
        billing_code_id: Optional[int] = None,
        tags: Optional[List[str]] = None,
        started_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> TimeEntry:
        """
        Create a time entry for testing.

        Args:
            session: Database session
            matter: Matter worked
            user: User who worked
            raw_minutes: Unrounded duration
            rate_cents: Hourly rate applied
            status: Entry status
            description: Work description
            billing_code_id: Optional billing code
            tags: Optional tags
            started_at: Optional timer start
            created_at: Optional creation time

        Returns:
            Created TimeEntry instance
        """
        running = status == TimeEntryStatus.RUNNING.value
        billed = 0 if running else billing.billed_minutes(raw_minutes)
        entry = TimeEntry(
            matter_id=matter.id,
            user_id=user.id,
            billing_code_id=billing_code_id,
            tags=tags,
            description=description,
            status=status,
            started_at=started_at,
            raw_minutes=0 if running else raw_minutes,
            billed_minutes=billed,
            rate_cents_applied=0 if running else rate_cents,
            amount_cents=0 if running else billing.amount_cents(billed, rate_cents),
            created_at=created_at or billing.utcnow(),
        )
        session.add(entry)
        await session.commit()
        await session.refresh(entry)
        return entry
