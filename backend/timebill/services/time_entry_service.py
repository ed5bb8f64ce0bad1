"""
Time Entry Service.

WHAT: Business logic for the time entry lifecycle.

WHY: The service layer:
1. Owns the state machine (running -> draft -> billed, draft -> written_off)
2. Prices entries: six-minute rounding, rate resolution, cents
3. Rejects changes to billed and written-off entries
4. Coordinates the timer registry for start/stop

HOW: Orchestrates TimeEntryDAO, the TimerRegistry and the RateResolver.
Every operation accepts an optional ``now`` so callers (and tests) control
the clock; it defaults to billing.utcnow().
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from timebill.core.exceptions import (
    BillingCodeNotFoundError,
    ImmutableError,
    MatterNotFoundError,
    TimeEntryNotFoundError,
    TimerNotRunningError,
    UserNotFoundError,
    ValidationError,
)
from timebill.dao.billing_code import BillingCodeDAO
from timebill.dao.time_entry import TimeEntryDAO
from timebill.dao.user import MatterDAO, UserDAO
from timebill.models.billing_code import BillingCode
from timebill.models.matter import Matter
from timebill.models.time_entry import TimeEntry, TimeEntryStatus
from timebill.models.user import User
from timebill.services import billing
from timebill.services.rate_resolver import RateResolver
from timebill.services.timer_registry import TimerRegistry

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("description", "billing_code_id", "tags")


class TimeEntryService:
    """
    Service for time entry operations.

    WHAT: Start/stop timers, manual entries, edits, deletes, write-offs.

    HOW: Coordinates DAOs and enforces the lifecycle rules. Amounts are
    computed once, when an entry becomes a draft, and afterwards only by
    an explicit recalculation.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize TimeEntryService.

        Args:
            session: Async database session
        """
        self.session = session
        self.entry_dao = TimeEntryDAO(session)
        self.user_dao = UserDAO(session)
        self.matter_dao = MatterDAO(session)
        self.billing_code_dao = BillingCodeDAO(session)
        self.registry = TimerRegistry(session)
        self.rate_resolver = RateResolver(session)

    # ========================================================================
    # Lookups
    # ========================================================================

    async def _require_user(self, user_id: int) -> User:
        user = await self.user_dao.get_by_id(user_id)
        if not user:
            raise UserNotFoundError(user_id=user_id)
        return user

    async def _require_matter(self, matter_id: int) -> Matter:
        matter = await self.matter_dao.get_by_id(matter_id)
        if not matter:
            raise MatterNotFoundError(matter_id=matter_id)
        return matter

    async def _load_billing_code(
        self,
        billing_code_id: Optional[int],
        require_active: bool = True,
    ) -> Optional[BillingCode]:
        """
        Load a billing code by id.

        Args:
            billing_code_id: Billing code ID or None
            require_active: Reject inactive codes (new selections)

        Returns:
            BillingCode, or None when no id was given

        Raises:
            BillingCodeNotFoundError: If the id does not exist
            ValidationError: If the code is inactive and require_active is set
        """
        if billing_code_id is None:
            return None
        code = await self.billing_code_dao.get_by_id(billing_code_id)
        if not code:
            raise BillingCodeNotFoundError(billing_code_id=billing_code_id)
        if require_active and not code.active:
            raise ValidationError(
                message="Billing code is inactive",
                billing_code_id=billing_code_id,
                code=code.code,
            )
        return code

    async def _price(
        self,
        raw_minutes: int,
        user: User,
        billing_code: Optional[BillingCode],
    ) -> Dict[str, int]:
        """Duration and money columns for a completed entry."""
        billed = billing.billed_minutes(raw_minutes)
        resolved = await self.rate_resolver.resolve(billing_code, user)
        return {
            "raw_minutes": max(raw_minutes, 0),
            "billed_minutes": billed,
            "rate_cents_applied": resolved.rate_cents,
            "amount_cents": billing.amount_cents(billed, resolved.rate_cents),
        }

    async def get_entry(self, entry_id: int) -> TimeEntry:
        """
        Get a time entry by ID.

        Args:
            entry_id: Entry ID

        Returns:
            TimeEntry

        Raises:
            TimeEntryNotFoundError: If not found
        """
        entry = await self.entry_dao.get_by_id(entry_id)
        if not entry:
            raise TimeEntryNotFoundError(entry_id=entry_id)
        return entry

    async def list_for_user(
        self,
        user_id: int,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[TimeEntry]:
        return await self.entry_dao.get_by_user(user_id, status=status, skip=skip, limit=limit)

    async def list_for_matter(
        self,
        matter_id: int,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[TimeEntry]:
        await self._require_matter(matter_id)
        return await self.entry_dao.get_by_matter(matter_id, status=status, skip=skip, limit=limit)

    async def get_running_timer(self, user_id: int) -> Optional[TimeEntry]:
        """
        Get the user's running timer.

        WHY: Clients call this on load to resume a timer after a refresh or
        a server restart; the answer always comes from the database.
        """
        return await self.registry.get_running(user_id)

    # ========================================================================
    # Timer
    # ========================================================================

    async def start_timer(
        self,
        matter_id: int,
        user_id: int,
        description: str = "",
        billing_code_id: Optional[int] = None,
        tags: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> TimeEntry:
        """
        Start a timer.

        WHAT: Creates a running entry starting now.

        Args:
            matter_id: Matter being worked
            user_id: User starting the timer
            description: Work description (required by the time it stops)
            billing_code_id: Optional billing code
            tags: Optional tags
            now: Start time override

        Returns:
            The running TimeEntry

        Raises:
            TimerAlreadyRunningError: If the user already has a running entry
            NotFoundError: If the matter, user or billing code does not exist
            ValidationError: If the billing code is inactive
        """
        await self._require_matter(matter_id)
        await self._require_user(user_id)
        await self._load_billing_code(billing_code_id)

        started_at = now or billing.utcnow()
        entry = await self.registry.claim(
            matter_id=matter_id,
            user_id=user_id,
            description=(description or "").strip(),
            started_at=started_at,
            billing_code_id=billing_code_id,
            tags=tags,
        )

        logger.info(
            "Timer started: entry %s for user %s on matter %s",
            entry.id,
            user_id,
            matter_id,
        )
        return entry

    async def stop_timer(
        self,
        entry_id: int,
        billing_code_id: Optional[int] = None,
        description: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TimeEntry:
        """
        Stop a running timer and price the entry.

        WHAT: Records the end time, rounds the duration and computes the
        amount; the entry becomes a draft.

        HOW: raw minutes round any partial minute up, billed minutes round
        up to six-minute increments. The status change is conditional on
        the entry still running, so of two racing stops only one prices
        the entry.

        Args:
            entry_id: Running entry ID
            billing_code_id: Optional billing code to apply at stop
            description: Optional description replacing the current one
            now: Stop time override

        Returns:
            The draft TimeEntry

        Raises:
            TimeEntryNotFoundError: If the entry does not exist
            TimerNotRunningError: If the entry is not running
            ValidationError: If no description has been given
        """
        entry = await self.get_entry(entry_id)
        if entry.status != TimeEntryStatus.RUNNING.value:
            raise TimerNotRunningError(entry_id=entry_id, status=entry.status)

        final_description = (description if description is not None else entry.description) or ""
        final_description = final_description.strip()
        if not final_description:
            raise ValidationError(
                message="A description is required before stopping a timer",
                entry_id=entry_id,
            )

        if billing_code_id is not None and billing_code_id != entry.billing_code_id:
            code = await self._load_billing_code(billing_code_id)
        else:
            billing_code_id = entry.billing_code_id
            code = await self._load_billing_code(billing_code_id, require_active=False)

        user = await self._require_user(entry.user_id)
        ended_at = now or billing.utcnow()
        if entry.started_at and ended_at < entry.started_at:
            ended_at = entry.started_at
        raw = billing.raw_minutes_between(entry.started_at, ended_at)
        priced = await self._price(raw, user, code)

        stopped = await self.entry_dao.transition(
            entry_id,
            TimeEntryStatus.RUNNING.value,
            status=TimeEntryStatus.DRAFT.value,
            ended_at=ended_at,
            description=final_description,
            billing_code_id=billing_code_id,
            **priced,
        )
        if not stopped:
            current = await self.entry_dao.reload(entry_id)
            raise TimerNotRunningError(
                entry_id=entry_id,
                status=current.status if current else None,
            )

        await self.session.refresh(entry)
        logger.info(
            "Timer stopped: entry %s raw=%s billed=%s amount_cents=%s",
            entry_id,
            entry.raw_minutes,
            entry.billed_minutes,
            entry.amount_cents,
        )
        return entry

    # ========================================================================
    # Manual entries
    # ========================================================================

    async def create_manual_entry(
        self,
        matter_id: int,
        user_id: int,
        description: str,
        raw_minutes: Optional[int] = None,
        billing_code_id: Optional[int] = None,
        tags: Optional[List[str]] = None,
        started_at: Optional[datetime] = None,
        ended_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> TimeEntry:
        """
        Create a completed entry without a timer.

        WHAT: Same rounding and pricing as a stopped timer; status draft.

        HOW: When both started_at and ended_at are given the duration comes
        from them; otherwise raw_minutes is used as given.

        Args:
            matter_id: Matter worked
            user_id: User who did the work
            description: Work description
            raw_minutes: Unrounded minutes worked
            billing_code_id: Optional billing code
            tags: Optional tags
            started_at: Optional start of the work
            ended_at: Optional end of the work
            now: Creation time override

        Returns:
            The draft TimeEntry

        Raises:
            ValidationError: Blank description or non-positive duration
            NotFoundError: If the matter, user or billing code does not exist
        """
        description = (description or "").strip()
        if not description:
            raise ValidationError(message="Description is required")

        started_at = billing.to_naive_utc(started_at)
        ended_at = billing.to_naive_utc(ended_at)
        if started_at is not None or ended_at is not None:
            if started_at is None or ended_at is None:
                raise ValidationError(
                    message="started_at and ended_at must be given together",
                )
            if ended_at <= started_at:
                raise ValidationError(
                    message="ended_at must be after started_at",
                    started_at=started_at.isoformat(),
                    ended_at=ended_at.isoformat(),
                )
            raw_minutes = billing.raw_minutes_between(started_at, ended_at)

        if raw_minutes is None or raw_minutes <= 0:
            raise ValidationError(
                message="Duration must be a positive number of minutes",
                raw_minutes=raw_minutes,
            )

        await self._require_matter(matter_id)
        user = await self._require_user(user_id)
        code = await self._load_billing_code(billing_code_id)
        priced = await self._price(raw_minutes, user, code)

        entry = await self.entry_dao.create(
            matter_id=matter_id,
            user_id=user_id,
            billing_code_id=billing_code_id,
            tags=tags,
            description=description,
            started_at=started_at,
            ended_at=ended_at,
            status=TimeEntryStatus.DRAFT.value,
            created_at=now or billing.utcnow(),
            **priced,
        )

        logger.info(
            "Manual entry %s created for user %s: billed=%s amount_cents=%s",
            entry.id,
            user_id,
            entry.billed_minutes,
            entry.amount_cents,
        )
        return entry

    # ========================================================================
    # Edit / delete / write-off
    # ========================================================================

    async def edit_entry(
        self,
        entry_id: int,
        patch: Dict[str, Any],
        recalculate_rate: bool = False,
    ) -> TimeEntry:
        """
        Edit a running or draft entry.

        WHAT: Applies description, billing code and tag changes.

        WHY: billed_minutes is never changed by an edit. When the billing
        code changes on a draft, or recalculate_rate is set, the rate is
        resolved again and the amount recomputed from the existing billed
        minutes.

        Args:
            entry_id: Entry ID
            patch: Fields to change (description, billing_code_id, tags)
            recalculate_rate: Force a rate/amount recalculation

        Returns:
            Updated TimeEntry

        Raises:
            ImmutableError: If the entry is billed or written off
            ValidationError: Blank description or inactive billing code
        """
        entry = await self.get_entry(entry_id)
        if entry.is_immutable:
            raise ImmutableError(
                message=f"Cannot edit a {entry.status} time entry",
                entry_id=entry_id,
                status=entry.status,
            )

        changes: Dict[str, Any] = {}

        if "description" in patch:
            new_description = (patch["description"] or "").strip()
            if not new_description and entry.status == TimeEntryStatus.DRAFT.value:
                raise ValidationError(message="Description is required", entry_id=entry_id)
            changes["description"] = new_description

        if "tags" in patch:
            changes["tags"] = list(patch["tags"]) if patch["tags"] is not None else None

        code_changed = False
        if "billing_code_id" in patch and patch["billing_code_id"] != entry.billing_code_id:
            await self._load_billing_code(patch["billing_code_id"])
            changes["billing_code_id"] = patch["billing_code_id"]
            code_changed = True

        if entry.status == TimeEntryStatus.DRAFT.value and (recalculate_rate or code_changed):
            code_id = changes.get("billing_code_id", entry.billing_code_id)
            code = await self._load_billing_code(code_id, require_active=False)
            user = await self._require_user(entry.user_id)
            resolved = await self.rate_resolver.resolve(code, user)
            changes["rate_cents_applied"] = resolved.rate_cents
            changes["amount_cents"] = billing.amount_cents(entry.billed_minutes, resolved.rate_cents)

        for field, value in changes.items():
            setattr(entry, field, value)
        await self.session.flush()
        await self.session.refresh(entry)

        if "amount_cents" in changes:
            logger.info(
                "Entry %s repriced: rate_cents=%s amount_cents=%s",
                entry_id,
                entry.rate_cents_applied,
                entry.amount_cents,
            )
        return entry

    async def delete_entry(self, entry_id: int) -> None:
        """
        Delete an entry.

        WHY: Deleting a running entry is how an abandoned timer is discarded.

        Raises:
            TimeEntryNotFoundError: If not found
            ImmutableError: If the entry is billed or written off
        """
        entry = await self.get_entry(entry_id)
        if entry.is_immutable:
            raise ImmutableError(
                message=f"Cannot delete a {entry.status} time entry",
                entry_id=entry_id,
                status=entry.status,
            )

        await self.entry_dao.delete(entry_id)
        logger.info("Entry %s deleted (was %s)", entry_id, entry.status)

    async def write_off(self, entry_id: int) -> TimeEntry:
        """
        Write off a draft entry.

        WHAT: Terminal alternative to billing; the entry keeps its amount
        for reporting but can no longer be invoiced, edited or deleted.

        Raises:
            TimeEntryNotFoundError: If not found
            ImmutableError: If the entry is not a draft
        """
        entry = await self.get_entry(entry_id)
        written_off = await self.entry_dao.transition(
            entry_id,
            TimeEntryStatus.DRAFT.value,
            status=TimeEntryStatus.WRITTEN_OFF.value,
        )
        if not written_off:
            raise ImmutableError(
                message="Only draft entries can be written off",
                entry_id=entry_id,
                status=entry.status,
            )

        await self.session.refresh(entry)
        logger.info("Entry %s written off (amount_cents=%s)", entry_id, entry.amount_cents)
        return entry
