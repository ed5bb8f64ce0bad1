"""
Time Entry Data Access Object (DAO).

WHAT: Database operations for the TimeEntry model.

WHY: The DAO pattern:
1. Separates data access from business logic
2. Keeps the status-guarded (conditional) updates in one place
3. Provides the row locks invoice assembly depends on

HOW: Extends BaseDAO with time-specific queries:
- Running-timer lookup per user
- Matter/user listings and the draft-entry date filter
- Conditional status transitions reporting how many rows moved
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.dao.base import BaseDAO
from timebill.models.time_entry import TimeEntry, TimeEntryStatus


class TimeEntryDAO(BaseDAO[TimeEntry]):
    """
    Data Access Object for TimeEntry model.

    WHAT: Provides CRUD and query operations for time entries.

    HOW: Extends BaseDAO with time-specific methods. Status changes that
    must not race (stop, bill) go through conditional UPDATEs whose row
    count tells the caller whether it won.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize TimeEntryDAO.

        Args:
            session: Async database session
        """
        super().__init__(TimeEntry, session)

    async def get_running(self, user_id: int) -> Optional[TimeEntry]:
        """
        Get the running entry for a user.

        WHY: Runningness is derived from persisted status, so this query is
        also how timer state is recovered after a restart.

        Args:
            user_id: User ID

        Returns:
            Running entry or None
        """
        result = await self.session.execute(
            select(TimeEntry).where(
                TimeEntry.user_id == user_id,
                TimeEntry.status == TimeEntryStatus.RUNNING.value,
            )
        )
        return result.scalars().first()

    async def get_by_user(
        self,
        user_id: int,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[TimeEntry]:
        """
        Get time entries for a user, newest first.

        Args:
            user_id: User ID
            status: Optional status filter
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of time entries
        """
        query = select(TimeEntry).where(TimeEntry.user_id == user_id)
        if status:
            query = query.where(TimeEntry.status == status)

        result = await self.session.execute(
            query.order_by(TimeEntry.created_at.desc(), TimeEntry.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_matter(
        self,
        matter_id: int,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[TimeEntry]:
        """
        Get time entries for a matter, newest first.

        Args:
            matter_id: Matter ID
            status: Optional status filter
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of time entries
        """
        query = select(TimeEntry).where(TimeEntry.matter_id == matter_id)
        if status:
            query = query.where(TimeEntry.status == status)

        result = await self.session.execute(
            query.order_by(TimeEntry.created_at.desc(), TimeEntry.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_draft_entries(
        self,
        matter_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TimeEntry]:
        """
        Get draft entries for a matter, optionally within a creation-date range.

        WHAT: Candidates for invoice selection.

        HOW: Both bounds are inclusive calendar days on created_at.

        Args:
            matter_id: Matter ID
            start_date: First day to include
            end_date: Last day to include

        Returns:
            Draft entries, oldest first
        """
        query = select(TimeEntry).where(
            TimeEntry.matter_id == matter_id,
            TimeEntry.status == TimeEntryStatus.DRAFT.value,
        )

        if start_date:
            query = query.where(TimeEntry.created_at >= datetime.combine(start_date, time.min))
        if end_date:
            next_day = datetime.combine(end_date + timedelta(days=1), time.min)
            query = query.where(TimeEntry.created_at < next_day)

        result = await self.session.execute(
            query.order_by(TimeEntry.created_at.asc(), TimeEntry.id.asc())
        )
        return list(result.scalars().all())

    async def lock_entries(self, entry_ids: Sequence[int]) -> List[TimeEntry]:
        """
        Load entries with a row lock held until the transaction ends.

        WHY: Invoice assembly checks and then bills the same rows; the lock
        keeps a concurrent assembly from passing the same check. Backends
        without FOR UPDATE (SQLite) ignore the clause and rely on the
        conditional update in mark_billed.

        Args:
            entry_ids: Entry IDs to lock

        Returns:
            The entries that exist, with fresh column values
        """
        if not entry_ids:
            return []
        result = await self.session.execute(
            select(TimeEntry)
            .where(TimeEntry.id.in_(list(entry_ids)))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def transition(
        self,
        entry_id: int,
        from_status: str,
        **values,
    ) -> bool:
        """
        Update an entry only if it is still in ``from_status``.

        Args:
            entry_id: Time entry ID
            from_status: Required current status
            **values: Column values to set

        Returns:
            True if the row was updated, False if its status had changed
        """
        result = await self.session.execute(
            update(TimeEntry)
            .where(TimeEntry.id == entry_id, TimeEntry.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_billed(
        self,
        entry_ids: Sequence[int],
        matter_id: int,
        invoice_id: int,
    ) -> int:
        """
        Move draft entries of a matter to billed, linking them to an invoice.

        Args:
            entry_ids: Entry IDs to bill
            matter_id: Matter the entries must belong to
            invoice_id: Invoice taking the entries

        Returns:
            Number of rows that were still draft and are now billed
        """
        result = await self.session.execute(
            update(TimeEntry)
            .where(
                TimeEntry.id.in_(list(entry_ids)),
                TimeEntry.matter_id == matter_id,
                TimeEntry.status == TimeEntryStatus.DRAFT.value,
            )
            .values(status=TimeEntryStatus.BILLED.value, invoice_id=invoice_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def release_from_invoice(self, invoice_id: int) -> int:
        """
        Return an invoice's billed entries to draft and clear the link.

        Args:
            invoice_id: Invoice being voided

        Returns:
            Number of entries released
        """
        result = await self.session.execute(
            update(TimeEntry)
            .where(
                TimeEntry.invoice_id == invoice_id,
                TimeEntry.status == TimeEntryStatus.BILLED.value,
            )
            .values(status=TimeEntryStatus.DRAFT.value, invoice_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def reload_many(self, entry_ids: Sequence[int]) -> List[TimeEntry]:
        """Re-read several entries after a bulk update, oldest first."""
        if not entry_ids:
            return []
        result = await self.session.execute(
            select(TimeEntry)
            .where(TimeEntry.id.in_(list(entry_ids)))
            .order_by(TimeEntry.created_at.asc(), TimeEntry.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
