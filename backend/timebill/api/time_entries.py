"""
Time Entry API Routes.

WHAT: REST API endpoints for timers and time entries.

WHY: Time entries are the source of every billed amount:
1. Timers record work as it happens
2. Manual entries record work after the fact
3. Drafts can be corrected, written off or invoiced

HOW: Uses FastAPI with dependency injection for the database session.
Authentication happens upstream, so the acting user_id is part of the
request.
"""

from typing import Optional, List
from fastapi import APIRouter, Depends, Query, Response, status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.db.session import get_db
from timebill.services.time_entry_service import TimeEntryService
from timebill.schemas.time_entry import (
    TimerStartRequest,
    TimerStopRequest,
    ManualEntryRequest,
    TimeEntryUpdateRequest,
    TimeEntryResponse,
    TimeEntryStatus,
)


router = APIRouter(prefix="/time-entries", tags=["time-entries"])


def _entry_to_response(entry) -> TimeEntryResponse:
    """
    Convert TimeEntry model to response schema.

    WHAT: Maps model fields to response, flattening related names.
    """
    return TimeEntryResponse(
        id=entry.id,
        matter_id=entry.matter_id,
        matter_name=entry.matter.name if entry.matter else None,
        user_id=entry.user_id,
        user_name=entry.user.name if entry.user else None,
        billing_code_id=entry.billing_code_id,
        billing_code=entry.billing_code.code if entry.billing_code else None,
        tags=entry.tags,
        started_at=entry.started_at,
        ended_at=entry.ended_at,
        raw_minutes=entry.raw_minutes,
        billed_minutes=entry.billed_minutes,
        rate_cents_applied=entry.rate_cents_applied,
        amount_cents=entry.amount_cents,
        status=TimeEntryStatus(entry.status),
        description=entry.description,
        is_running=entry.is_running,
        invoice_id=entry.invoice_id,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


# ============================================================================
# Timer Endpoints
# ============================================================================


@router.post("/timer/start", response_model=TimeEntryResponse)
async def start_timer(
    request: TimerStartRequest,
    session: AsyncSession = Depends(get_db),
):
    """
    Start a timer.

    WHAT: Creates a running entry for the user.

    WHY: Fails with 409 if the user already has a running timer.
    """
    service = TimeEntryService(session)

    entry = await service.start_timer(
        matter_id=request.matter_id,
        user_id=request.user_id,
        description=request.description,
        billing_code_id=request.billing_code_id,
        tags=request.tags,
    )

    await session.commit()
    return _entry_to_response(entry)


@router.post("/{entry_id}/stop", response_model=TimeEntryResponse)
async def stop_timer(
    entry_id: int,
    request: Optional[TimerStopRequest] = None,
    session: AsyncSession = Depends(get_db),
):
    """
    Stop a running timer.

    WHAT: Rounds the elapsed time, prices it and leaves a draft entry.
    """
    service = TimeEntryService(session)
    request = request or TimerStopRequest()

    entry = await service.stop_timer(
        entry_id,
        billing_code_id=request.billing_code_id,
        description=request.description,
    )

    await session.commit()
    return _entry_to_response(entry)


@router.get("/running", response_model=Optional[TimeEntryResponse])
async def get_running_timer(
    user_id: int = Query(..., description="User whose timer to look up"),
    session: AsyncSession = Depends(get_db),
):
    """
    Get the user's running timer.

    WHY: Clients resume a timer after a refresh or restart. Returns null
    when no timer is running.
    """
    service = TimeEntryService(session)
    entry = await service.get_running_timer(user_id)
    return _entry_to_response(entry) if entry else None


# ============================================================================
# Entry Endpoints
# ============================================================================


@router.post("/manual", response_model=TimeEntryResponse)
async def create_manual_entry(
    request: ManualEntryRequest,
    session: AsyncSession = Depends(get_db),
):
    """
    Create a completed time entry without a timer.
    """
    service = TimeEntryService(session)

    entry = await service.create_manual_entry(
        matter_id=request.matter_id,
        user_id=request.user_id,
        description=request.description,
        raw_minutes=request.raw_minutes,
        billing_code_id=request.billing_code_id,
        tags=request.tags,
        started_at=request.started_at,
        ended_at=request.ended_at,
    )

    await session.commit()
    return _entry_to_response(entry)


@router.get("", response_model=List[TimeEntryResponse])
async def list_time_entries(
    user_id: int = Query(..., description="User whose entries to list"),
    status: Optional[TimeEntryStatus] = Query(None, description="Filter by status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    session: AsyncSession = Depends(get_db),
):
    """
    List a user's time entries, newest first.
    """
    service = TimeEntryService(session)
    entries = await service.list_for_user(
        user_id,
        status=status.value if status else None,
        skip=skip,
        limit=limit,
    )
    return [_entry_to_response(e) for e in entries]


@router.get("/matter/{matter_id}", response_model=List[TimeEntryResponse])
async def list_matter_entries(
    matter_id: int,
    status: Optional[TimeEntryStatus] = Query(None, description="Filter by status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    session: AsyncSession = Depends(get_db),
):
    """
    List a matter's time entries, newest first.
    """
    service = TimeEntryService(session)
    entries = await service.list_for_matter(
        matter_id,
        status=status.value if status else None,
        skip=skip,
        limit=limit,
    )
    return [_entry_to_response(e) for e in entries]


@router.get("/{entry_id}", response_model=TimeEntryResponse)
async def get_time_entry(
    entry_id: int,
    session: AsyncSession = Depends(get_db),
):
    service = TimeEntryService(session)
    entry = await service.get_entry(entry_id)
    return _entry_to_response(entry)


@router.put("/{entry_id}", response_model=TimeEntryResponse)
async def update_time_entry(
    entry_id: int,
    request: TimeEntryUpdateRequest,
    session: AsyncSession = Depends(get_db),
):
    """
    Edit a running or draft entry.

    WHAT: Only fields present in the request are changed.

    WHY: Billed and written-off entries are rejected with 409.
    """
    service = TimeEntryService(session)

    patch = request.model_dump(exclude_unset=True, exclude={"recalculate_rate"})
    entry = await service.edit_entry(
        entry_id,
        patch,
        recalculate_rate=request.recalculate_rate,
    )

    await session.commit()
    return _entry_to_response(entry)


@router.delete("/{entry_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_time_entry(
    entry_id: int,
    session: AsyncSession = Depends(get_db),
):
    """
    Delete a running or draft entry.

    WHY: Deleting a running entry discards an abandoned timer.
    """
    service = TimeEntryService(session)
    await service.delete_entry(entry_id)
    await session.commit()
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)


@router.post("/{entry_id}/write-off", response_model=TimeEntryResponse)
async def write_off_time_entry(
    entry_id: int,
    session: AsyncSession = Depends(get_db),
):
    """
    Write off a draft entry so it is never invoiced.
    """
    service = TimeEntryService(session)
    entry = await service.write_off(entry_id)
    await session.commit()
    return _entry_to_response(entry)
