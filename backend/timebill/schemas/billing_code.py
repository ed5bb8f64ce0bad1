"""
Billing code and role rate schemas.

WHAT: Request/Response models for rate administration endpoints.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


# ============================================================================
# Billing codes
# ============================================================================


class BillingCodeCreateRequest(BaseModel):
    """
    Request schema for creating a billing code.

    WHY: fixed_rate_cents and override_role are both optional. A code with
    neither charges the timekeeper's own role rate.
    """

    code: str = Field(..., min_length=1, max_length=50, description="Unique code, e.g. L110")
    label: str = Field(..., min_length=1, max_length=255, description="Display label")
    fixed_rate_cents: Optional[int] = Field(
        None, ge=0, description="Fixed hourly rate in cents"
    )
    override_role: Optional[str] = Field(
        None, max_length=100, description="Role whose rate is charged instead"
    )
    active: bool = Field(default=True, description="Selectable for new entries")


class BillingCodeUpdateRequest(BaseModel):
    """Partial update of a billing code."""

    code: Optional[str] = Field(None, min_length=1, max_length=50, description="Code")
    label: Optional[str] = Field(None, min_length=1, max_length=255, description="Label")
    fixed_rate_cents: Optional[int] = Field(None, ge=0, description="Fixed hourly rate in cents")
    override_role: Optional[str] = Field(None, max_length=100, description="Override role")
    active: Optional[bool] = Field(None, description="Selectable for new entries")


class BillingCodeResponse(BaseModel):
    id: int = Field(..., description="Billing code ID")
    code: str = Field(..., description="Code")
    label: str = Field(..., description="Label")
    fixed_rate_cents: Optional[int] = Field(None, description="Fixed hourly rate in cents")
    override_role: Optional[str] = Field(None, description="Override role")
    active: bool = Field(..., description="Selectable for new entries")
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: Optional[datetime] = Field(None, description="Updated timestamp")

    model_config = {"from_attributes": True}


# ============================================================================
# Role rates
# ============================================================================


class RoleRateRequest(BaseModel):
    """Request schema for setting a role's hourly rate."""

    role: str = Field(..., min_length=1, max_length=100, description="Role name")
    rate_cents: int = Field(..., ge=0, description="Hourly rate in cents")


class RoleRateResponse(BaseModel):
    id: int = Field(..., description="Role rate ID")
    role: str = Field(..., description="Role name")
    rate_cents: int = Field(..., description="Hourly rate in cents")
    updated_at: Optional[datetime] = Field(None, description="Updated timestamp")

    model_config = {"from_attributes": True}
