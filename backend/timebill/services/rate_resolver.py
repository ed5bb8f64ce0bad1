"""
Rate Resolver.

WHAT: Decides the hourly rate, in cents, for a piece of work.

WHY: Rates come from several places (billing code, role table, the
timekeeper's personal rate) and the order in which they apply decides
what the client pays. The order is explicit here and every result says
which tier produced it, so each tier can be tested on its own.

HOW: Precedence, first match wins:
1. billing_code.fixed_rate_cents, when non-zero
2. role_rates[billing_code.override_role], when set and non-zero
3. role_rates[user.role], when non-zero
4. user.billable_rate_dollars converted to cents, when non-zero
5. 0, meaning unbillable (a value, not an error)

A zero fixed rate is treated as unset so it never masks an override role.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from timebill.dao.billing_code import RoleRateDAO
from timebill.services.billing import dollars_to_cents

logger = logging.getLogger(__name__)


class RateSource(str, Enum):
    """Which precedence tier produced a rate."""

    FIXED = "fixed"
    OVERRIDE_ROLE = "override_role"
    USER_ROLE = "user_role"
    USER_FALLBACK = "user_fallback"
    NONE = "none"


@dataclass(frozen=True)
class ResolvedRate:
    """An hourly rate in cents and the tier it came from."""

    rate_cents: int
    source: RateSource


UNBILLABLE = ResolvedRate(rate_cents=0, source=RateSource.NONE)


def resolve_rate(
    billing_code: Optional[Any],
    user: Optional[Any],
    role_rates: Mapping[str, int],
) -> ResolvedRate:
    """
    Resolve the hourly rate for a billing code and timekeeper.

    Args:
        billing_code: Object with fixed_rate_cents and override_role, or None
        user: Object with role and billable_rate_dollars, or None
        role_rates: Role name to hourly rate in cents

    Returns:
        ResolvedRate with the rate and the tier that produced it
    """
    if billing_code is not None:
        if billing_code.fixed_rate_cents:
            return ResolvedRate(int(billing_code.fixed_rate_cents), RateSource.FIXED)

        override_role = billing_code.override_role
        if override_role and role_rates.get(override_role):
            return ResolvedRate(int(role_rates[override_role]), RateSource.OVERRIDE_ROLE)

    if user is not None:
        if user.role and role_rates.get(user.role):
            return ResolvedRate(int(role_rates[user.role]), RateSource.USER_ROLE)

        fallback = dollars_to_cents(user.billable_rate_dollars)
        if fallback:
            return ResolvedRate(fallback, RateSource.USER_FALLBACK)

    return UNBILLABLE


class RateResolver:
    """
    Database-backed wrapper around resolve_rate.

    WHAT: Loads the role table for a pricing call.

    HOW: The role table is read once per resolver instance; services build
    a resolver per request, so rate changes apply from the next request.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize RateResolver.

        Args:
            session: Async database session
        """
        self.session = session
        self.role_rate_dao = RoleRateDAO(session)
        self._role_rates: Optional[dict] = None

    async def role_rates(self) -> dict:
        if self._role_rates is None:
            self._role_rates = await self.role_rate_dao.as_table()
        return self._role_rates

    async def resolve(self, billing_code: Optional[Any], user: Any) -> ResolvedRate:
        """
        Resolve the rate for an already loaded billing code and user.

        Args:
            billing_code: BillingCode or None
            user: User performing the work

        Returns:
            ResolvedRate
        """
        resolved = resolve_rate(billing_code, user, await self.role_rates())
        logger.debug(
            "Resolved rate %s cents/hr from %s (user_id=%s, billing_code_id=%s)",
            resolved.rate_cents,
            resolved.source.value,
            getattr(user, "id", None),
            getattr(billing_code, "id", None),
        )
        return resolved
