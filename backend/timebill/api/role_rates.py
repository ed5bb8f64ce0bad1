"""
Role Rate API Routes.

WHAT: List and set the hourly rate charged for each role.

WHY: A changed rate applies to entries priced after the change; entries
already priced keep their snapshot.
"""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.db.session import get_db
from timebill.services.billing_code_service import BillingCodeService
from timebill.schemas.billing_code import RoleRateRequest, RoleRateResponse


router = APIRouter(prefix="/role-rates", tags=["role-rates"])


@router.get("", response_model=List[RoleRateResponse])
async def list_role_rates(
    session: AsyncSession = Depends(get_db),
):
    service = BillingCodeService(session)
    rates = await service.list_role_rates()
    return [RoleRateResponse.model_validate(r) for r in rates]


@router.post("", response_model=RoleRateResponse)
async def upsert_role_rate(
    request: RoleRateRequest,
    session: AsyncSession = Depends(get_db),
):
    """
    Create or replace the rate for a role.
    """
    service = BillingCodeService(session)
    rate = await service.upsert_role_rate(request.role, request.rate_cents)
    await session.commit()
    return RoleRateResponse.model_validate(rate)
