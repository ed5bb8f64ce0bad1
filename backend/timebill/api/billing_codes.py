"""
Billing Code API Routes.

WHAT: Administration endpoints for billing codes.

WHY: Codes classify work and can fix or redirect the hourly rate. Codes
already used by time entries are deactivated instead of deleted.
"""

from typing import List
from fastapi import APIRouter, Depends, Response, status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.db.session import get_db
from timebill.services.billing_code_service import BillingCodeService
from timebill.schemas.billing_code import (
    BillingCodeCreateRequest,
    BillingCodeUpdateRequest,
    BillingCodeResponse,
)


router = APIRouter(prefix="/billing-codes", tags=["billing-codes"])


@router.get("", response_model=List[BillingCodeResponse])
async def list_billing_codes(
    session: AsyncSession = Depends(get_db),
):
    service = BillingCodeService(session)
    codes = await service.list_codes()
    return [BillingCodeResponse.model_validate(c) for c in codes]


@router.get("/active", response_model=List[BillingCodeResponse])
async def list_active_billing_codes(
    session: AsyncSession = Depends(get_db),
):
    """
    List codes selectable for new entries.
    """
    service = BillingCodeService(session)
    codes = await service.list_codes(active_only=True)
    return [BillingCodeResponse.model_validate(c) for c in codes]


@router.post(
    "",
    response_model=BillingCodeResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def create_billing_code(
    request: BillingCodeCreateRequest,
    session: AsyncSession = Depends(get_db),
):
    service = BillingCodeService(session)
    code = await service.create_code(
        code=request.code,
        label=request.label,
        fixed_rate_cents=request.fixed_rate_cents,
        override_role=request.override_role,
        active=request.active,
    )
    await session.commit()
    return BillingCodeResponse.model_validate(code)


@router.get("/{billing_code_id}", response_model=BillingCodeResponse)
async def get_billing_code(
    billing_code_id: int,
    session: AsyncSession = Depends(get_db),
):
    service = BillingCodeService(session)
    code = await service.get_code(billing_code_id)
    return BillingCodeResponse.model_validate(code)


@router.put("/{billing_code_id}", response_model=BillingCodeResponse)
async def update_billing_code(
    billing_code_id: int,
    request: BillingCodeUpdateRequest,
    session: AsyncSession = Depends(get_db),
):
    """
    Update a billing code.

    WHY: Rate changes apply to entries priced afterwards; existing entries
    keep their rate until explicitly recalculated.
    """
    service = BillingCodeService(session)
    code = await service.update_code(
        billing_code_id,
        request.model_dump(exclude_unset=True),
    )
    await session.commit()
    return BillingCodeResponse.model_validate(code)


@router.delete("/{billing_code_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_billing_code(
    billing_code_id: int,
    session: AsyncSession = Depends(get_db),
):
    """
    Delete a billing code, or deactivate it when time entries reference it.
    """
    service = BillingCodeService(session)
    await service.delete_code(billing_code_id)
    await session.commit()
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)
