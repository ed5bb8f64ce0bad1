"""
Billing Code Service.

WHAT: Administration of billing codes and the role rate table.

WHY: Both feed rate resolution, so changes go through one place that
enforces their rules:
1. Billing code values are unique
2. Rates are never negative
3. A code already used by time entries is deactivated, not deleted,
   so historical entries keep their reference
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from timebill.core.exceptions import BillingCodeNotFoundError, ValidationError
from timebill.dao.billing_code import BillingCodeDAO, RoleRateDAO
from timebill.dao.time_entry import TimeEntryDAO
from timebill.models.billing_code import BillingCode
from timebill.models.role_rate import RoleRate

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("code", "label", "fixed_rate_cents", "override_role", "active")


def _check_rate(field: str, value: Optional[int]) -> None:
    if value is not None and value < 0:
        raise ValidationError(message=f"{field} cannot be negative", **{field: value})


class BillingCodeService:
    """Service for billing code and role rate administration."""

    def __init__(self, session: AsyncSession):
        """
        Initialize BillingCodeService.

        Args:
            session: Async database session
        """
        self.session = session
        self.code_dao = BillingCodeDAO(session)
        self.role_rate_dao = RoleRateDAO(session)
        self.entry_dao = TimeEntryDAO(session)

    # ========================================================================
    # Billing codes
    # ========================================================================

    async def list_codes(self, active_only: bool = False) -> List[BillingCode]:
        return await self.code_dao.list_codes(active_only=active_only)

    async def get_code(self, billing_code_id: int) -> BillingCode:
        """
        Get a billing code by ID.

        Raises:
            BillingCodeNotFoundError: If not found
        """
        code = await self.code_dao.get_by_id(billing_code_id)
        if not code:
            raise BillingCodeNotFoundError(billing_code_id=billing_code_id)
        return code

    async def create_code(
        self,
        code: str,
        label: str,
        fixed_rate_cents: Optional[int] = None,
        override_role: Optional[str] = None,
        active: bool = True,
    ) -> BillingCode:
        """
        Create a billing code.

        Args:
            code: Unique short code (e.g. "L110")
            label: Human readable name
            fixed_rate_cents: Optional fixed hourly rate in cents
            override_role: Optional role whose rate applies instead
            active: Whether the code can be chosen for new entries

        Returns:
            Created BillingCode

        Raises:
            ValidationError: Blank or duplicate code, negative rate
        """
        code = (code or "").strip()
        if not code:
            raise ValidationError(message="Billing code is required")
        _check_rate("fixed_rate_cents", fixed_rate_cents)

        if await self.code_dao.get_by_code(code):
            raise ValidationError(message="Billing code already exists", code=code)

        billing_code = await self.code_dao.create(
            code=code,
            label=label,
            fixed_rate_cents=fixed_rate_cents,
            override_role=override_role or None,
            active=active,
        )
        logger.info("Billing code %s created", code)
        return billing_code

    async def update_code(self, billing_code_id: int, patch: Dict[str, Any]) -> BillingCode:
        """
        Update a billing code.

        WHY: Existing entries keep the rate they were priced with; a rate
        change here only affects entries priced afterwards.

        Args:
            billing_code_id: Billing code ID
            patch: Fields to change

        Returns:
            Updated BillingCode

        Raises:
            BillingCodeNotFoundError: If not found
            ValidationError: Duplicate code or negative rate
        """
        billing_code = await self.get_code(billing_code_id)
        changes = {k: v for k, v in patch.items() if k in UPDATABLE_FIELDS}

        if "fixed_rate_cents" in changes:
            _check_rate("fixed_rate_cents", changes["fixed_rate_cents"])

        if "code" in changes:
            new_code = (changes["code"] or "").strip()
            if not new_code:
                raise ValidationError(message="Billing code is required")
            if new_code != billing_code.code and await self.code_dao.get_by_code(new_code):
                raise ValidationError(message="Billing code already exists", code=new_code)
            changes["code"] = new_code

        if not changes:
            return billing_code
        return await self.code_dao.update(billing_code_id, **changes)

    async def delete_code(self, billing_code_id: int) -> bool:
        """
        Delete a billing code, or deactivate it if entries use it.

        Returns:
            True if the row was deleted, False if it was deactivated

        Raises:
            BillingCodeNotFoundError: If not found
        """
        billing_code = await self.get_code(billing_code_id)

        if await self.entry_dao.exists(billing_code_id=billing_code_id):
            billing_code.active = False
            await self.session.flush()
            logger.info("Billing code %s is in use; deactivated", billing_code.code)
            return False

        await self.code_dao.delete(billing_code_id)
        logger.info("Billing code %s deleted", billing_code.code)
        return True

    # ========================================================================
    # Role rates
    # ========================================================================

    async def list_role_rates(self) -> List[RoleRate]:
        return await self.role_rate_dao.list_rates()

    async def upsert_role_rate(self, role: str, rate_cents: int) -> RoleRate:
        """
        Set the hourly rate for a role.

        Args:
            role: Role name (matched exactly against users' roles)
            rate_cents: Hourly rate in cents

        Returns:
            The stored RoleRate

        Raises:
            ValidationError: Blank role or negative rate
        """
        role = (role or "").strip()
        if not role:
            raise ValidationError(message="Role is required")
        if rate_cents is None:
            raise ValidationError(message="rate_cents is required", role=role)
        _check_rate("rate_cents", rate_cents)

        role_rate = await self.role_rate_dao.upsert(role, rate_cents)
        logger.info("Role rate for %s set to %s cents", role, rate_cents)
        return role_rate
