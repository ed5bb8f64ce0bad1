"""
Active Timer Registry.

WHAT: Guarantees that a user has at most one running time entry.

WHY: Two start requests from the same user (double click, two tabs) can
arrive together. Checking for a running entry and then inserting is not
atomic on its own, so the database has the final say: a partial unique
index on time_entries(user_id) WHERE status = 'running' rejects the
second insert.

HOW: There is no in-memory registry. The running entry is found by query,
so timer state survives restarts. claim() checks, inserts and commits;
if the insert loses a race it rolls back, checks once more, and reports
the winner as a TimerAlreadyRunningError.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.core.exceptions import TimerAlreadyRunningError
from timebill.dao.time_entry import TimeEntryDAO
from timebill.models.time_entry import TimeEntry, TimeEntryStatus

logger = logging.getLogger(__name__)

CLAIM_ATTEMPTS = 2


class TimerRegistry:
    """Query-backed registry of running timers."""

    def __init__(self, session: AsyncSession):
        """
        Initialize TimerRegistry.

        Args:
            session: Async database session
        """
        self.session = session
        self.entry_dao = TimeEntryDAO(session)

    async def get_running(self, user_id: int) -> Optional[TimeEntry]:
        """
        Get the user's running entry, if any.

        Args:
            user_id: User ID

        Returns:
            Running TimeEntry or None
        """
        return await self.entry_dao.get_running(user_id)

    async def claim(
        self,
        matter_id: int,
        user_id: int,
        description: str,
        started_at: datetime,
        billing_code_id: Optional[int] = None,
        tags: Optional[List[str]] = None,
    ) -> TimeEntry:
        """
        Create a running entry for the user, atomically with the check.

        Commits its own transaction so that a lost race can be rolled back
        and retried without discarding unrelated work.

        Args:
            matter_id: Matter being worked
            user_id: User starting the timer
            description: Work description (may be completed at stop)
            started_at: Timer start
            billing_code_id: Optional billing code
            tags: Optional tags

        Returns:
            The new running TimeEntry

        Raises:
            TimerAlreadyRunningError: If the user already has a running entry
        """
        for attempt in range(1, CLAIM_ATTEMPTS + 1):
            existing = await self.entry_dao.get_running(user_id)
            if existing is not None:
                raise TimerAlreadyRunningError(
                    user_id=user_id,
                    existing_entry_id=existing.id,
                )

            try:
                entry = await self.entry_dao.create(
                    matter_id=matter_id,
                    user_id=user_id,
                    billing_code_id=billing_code_id,
                    tags=tags,
                    description=description,
                    started_at=started_at,
                    status=TimeEntryStatus.RUNNING.value,
                    raw_minutes=0,
                    billed_minutes=0,
                    rate_cents_applied=0,
                    amount_cents=0,
                    created_at=started_at,
                )
                await self.session.commit()
                return entry
            except IntegrityError:
                await self.session.rollback()
                logger.warning(
                    "Concurrent timer start for user %s (attempt %d of %d)",
                    user_id,
                    attempt,
                    CLAIM_ATTEMPTS,
                )

        winner = await self.entry_dao.get_running(user_id)
        raise TimerAlreadyRunningError(
            user_id=user_id,
            existing_entry_id=winner.id if winner else None,
        )
