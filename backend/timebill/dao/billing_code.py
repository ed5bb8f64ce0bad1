"""
Billing code and role rate DAOs.

WHAT: Database operations for BillingCode and RoleRate.

WHY: Both tables feed rate resolution; keeping their queries together
mirrors how they are read together when an entry is priced.
"""

from typing import Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.dao.base import BaseDAO
from timebill.models.billing_code import BillingCode
from timebill.models.role_rate import RoleRate


class BillingCodeDAO(BaseDAO[BillingCode]):
    """Data Access Object for BillingCode model."""

    def __init__(self, session: AsyncSession):
        super().__init__(BillingCode, session)

    async def get_by_code(self, code: str) -> Optional[BillingCode]:
        return await self.get_by_field("code", code)

    async def list_codes(self, active_only: bool = False) -> List[BillingCode]:
        """
        List billing codes ordered by code.

        Args:
            active_only: Only return codes selectable for new entries

        Returns:
            List of billing codes
        """
        query = select(BillingCode)
        if active_only:
            query = query.where(BillingCode.active.is_(True))
        result = await self.session.execute(query.order_by(BillingCode.code))
        return list(result.scalars().all())


class RoleRateDAO(BaseDAO[RoleRate]):
    """Data Access Object for RoleRate model."""

    def __init__(self, session: AsyncSession):
        super().__init__(RoleRate, session)

    async def get_by_role(self, role: str) -> Optional[RoleRate]:
        return await self.get_by_field("role", role)

    async def list_rates(self) -> List[RoleRate]:
        result = await self.session.execute(select(RoleRate).order_by(RoleRate.role))
        return list(result.scalars().all())

    async def as_table(self) -> Dict[str, int]:
        """
        Load the role rate table as a mapping.

        Returns:
            Dict of role name to hourly rate in cents
        """
        result = await self.session.execute(select(RoleRate.role, RoleRate.rate_cents))
        return {role: rate_cents for role, rate_cents in result.all()}

    async def upsert(self, role: str, rate_cents: int) -> RoleRate:
        """
        Set the rate for a role, creating the row if needed.

        Args:
            role: Role name
            rate_cents: Hourly rate in cents

        Returns:
            The stored RoleRate
        """
        existing = await self.get_by_role(role)
        if existing is None:
            return await self.create(role=role, rate_cents=rate_cents)
        existing.rate_cents = rate_cents
        await self.session.flush()
        await self.session.refresh(existing)
        return existing
