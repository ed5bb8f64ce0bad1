"""
Time Entry Pydantic Schemas.

WHAT: Request/Response models for time tracking API endpoints.

WHY: Pydantic schemas provide:
1. Request validation
2. Response serialization
3. OpenAPI documentation

HOW: Defines schemas for:
- Timer start/stop
- Manual entries
- Entry edits
- Entry responses with money in integer cents
"""

from datetime import datetime
from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, Field, field_validator

from timebill.services.billing import to_naive_utc


class TimeEntryStatus(str, Enum):
    """Time entry status values."""

    RUNNING = "running"
    DRAFT = "draft"
    BILLED = "billed"
    WRITTEN_OFF = "written_off"


def _clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    cleaned = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


# ============================================================================
# Request Schemas
# ============================================================================


class TimerStartRequest(BaseModel):
    """
    Request schema for starting a timer.

    WHY: The description may be left blank at start; it is required by
    the time the timer stops.
    """

    matter_id: int = Field(..., description="Matter being worked")
    user_id: int = Field(..., description="User starting the timer")
    description: str = Field(default="", max_length=2000, description="Work description")
    billing_code_id: Optional[int] = Field(None, description="Billing code ID")
    tags: Optional[List[str]] = Field(None, description="Free-form tags")

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class TimerStopRequest(BaseModel):
    """Request schema for stopping a timer; both fields override the entry."""

    billing_code_id: Optional[int] = Field(None, description="Billing code to apply")
    description: Optional[str] = Field(
        None, max_length=2000, description="Replacement work description"
    )


class ManualEntryRequest(BaseModel):
    """
    Request schema for a manual time entry.

    WHAT: Either raw_minutes, or a started_at/ended_at pair from which the
    duration is derived.
    """

    matter_id: int = Field(..., description="Matter worked")
    user_id: int = Field(..., description="User who did the work")
    description: str = Field(
        ..., min_length=1, max_length=2000, description="Work description"
    )
    raw_minutes: Optional[int] = Field(
        None, gt=0, le=1440, description="Minutes worked before rounding"
    )
    started_at: Optional[datetime] = Field(None, description="Start of the work")
    ended_at: Optional[datetime] = Field(None, description="End of the work")
    billing_code_id: Optional[int] = Field(None, description="Billing code ID")
    tags: Optional[List[str]] = Field(None, description="Free-form tags")

    @field_validator("started_at", "ended_at")
    @classmethod
    def normalize_to_utc(cls, v):
        """Store timestamps as naive UTC; offsets are converted, not dropped."""
        return to_naive_utc(v)

    @field_validator("ended_at")
    @classmethod
    def validate_ended_at(cls, v, info):
        """Ensure ended_at is after started_at."""
        started_at = info.data.get("started_at")
        if v and started_at and v <= started_at:
            raise ValueError("ended_at must be after started_at")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class TimeEntryUpdateRequest(BaseModel):
    """
    Request schema for editing a time entry.

    WHAT: Partial update; only fields present in the request are applied.

    WHY: Durations are not editable. recalculate_rate re-resolves the
    rate against the current billing code and role table.
    """

    description: Optional[str] = Field(
        None, min_length=1, max_length=2000, description="Work description"
    )
    billing_code_id: Optional[int] = Field(None, description="Billing code ID")
    tags: Optional[List[str]] = Field(None, description="Free-form tags")
    recalculate_rate: bool = Field(
        default=False, description="Re-resolve the rate and recompute the amount"
    )

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


# ============================================================================
# Response Schemas
# ============================================================================


class TimeEntryResponse(BaseModel):
    """
    Response schema for a single time entry.

    WHAT: Time entry details for display. All money is integer cents.
    """

    id: int = Field(..., description="Entry ID")
    matter_id: int = Field(..., description="Matter ID")
    matter_name: Optional[str] = Field(None, description="Matter name")
    user_id: int = Field(..., description="User ID")
    user_name: Optional[str] = Field(None, description="User name")
    billing_code_id: Optional[int] = Field(None, description="Billing code ID")
    billing_code: Optional[str] = Field(None, description="Billing code")
    tags: Optional[List[str]] = Field(None, description="Tags")

    # Time
    started_at: Optional[datetime] = Field(None, description="Timer start")
    ended_at: Optional[datetime] = Field(None, description="Timer end")
    raw_minutes: int = Field(..., description="Minutes worked before rounding")
    billed_minutes: int = Field(..., description="Minutes billed (six-minute increments)")

    # Billing
    rate_cents_applied: int = Field(..., description="Hourly rate applied, in cents")
    amount_cents: int = Field(..., description="Amount, in cents")

    status: TimeEntryStatus = Field(..., description="Entry status")
    description: str = Field(..., description="Work description")
    is_running: bool = Field(..., description="Timer running")

    # Invoice
    invoice_id: Optional[int] = Field(None, description="Invoice ID")

    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: Optional[datetime] = Field(None, description="Updated timestamp")

    model_config = {"from_attributes": True}
