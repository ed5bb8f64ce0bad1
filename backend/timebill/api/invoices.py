"""
Invoice API Routes.

WHAT: REST API endpoints for invoice assembly and the payment workflow.

WHY: Invoices turn draft time into a bill:
1. Select draft entries for a matter
2. Assemble them into an invoice, locking them
3. Send, collect payments, or void while still a draft
4. Download as PDF

HOW: Uses FastAPI with dependency injection for the database session.
Assembly commits inside the service so it can retry a lost race.
"""

from datetime import date
from typing import Optional, List
from fastapi import APIRouter, Depends, Query, Response, status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.api.time_entries import _entry_to_response
from timebill.db.session import get_db
from timebill.services.invoice_service import InvoiceService
from timebill.schemas.time_entry import TimeEntryResponse
from timebill.schemas.invoice import (
    InvoiceFromEntriesRequest,
    PaymentRequest,
    InvoiceResponse,
    InvoiceSummaryResponse,
    InvoiceListResponse,
    InvoiceStatus,
)


router = APIRouter(prefix="/invoices", tags=["invoices"])


def _invoice_to_response(invoice) -> InvoiceResponse:
    """
    Convert Invoice model to response schema.

    WHAT: Includes the locked entries in line order.
    """
    return InvoiceResponse(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        matter_id=invoice.matter_id,
        matter_name=invoice.matter.name if invoice.matter else None,
        client_name=invoice.matter.client_name if invoice.matter else None,
        description=invoice.description,
        subtotal_cents=invoice.subtotal_cents,
        tax_cents=invoice.tax_cents,
        total_cents=invoice.total_cents,
        amount_paid_cents=invoice.amount_paid_cents,
        balance_cents=invoice.balance_cents,
        status=InvoiceStatus(invoice.status),
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        sent_at=invoice.sent_at,
        paid_at=invoice.paid_at,
        time_entry_ids=invoice.time_entry_ids,
        time_entries=[_entry_to_response(e) for e in invoice.time_entries],
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
    )


# ============================================================================
# Assembly Endpoints
# ============================================================================


@router.get("/draft-entries/{matter_id}", response_model=List[TimeEntryResponse])
async def list_draft_entries(
    matter_id: int,
    start_date: Optional[date] = Query(None, description="First day to include"),
    end_date: Optional[date] = Query(None, description="Last day to include"),
    session: AsyncSession = Depends(get_db),
):
    """
    List a matter's draft entries available for invoicing.

    WHAT: Optional inclusive date range on entry creation.
    """
    service = InvoiceService(session)
    entries = await service.draft_entries(matter_id, start_date, end_date)
    return [_entry_to_response(e) for e in entries]


@router.post(
    "/from-entries",
    response_model=InvoiceResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def create_invoice_from_entries(
    request: InvoiceFromEntriesRequest,
    session: AsyncSession = Depends(get_db),
):
    """
    Assemble an invoice from selected draft entries.

    WHAT: Bills every selected entry, or none of them.

    WHY: A 400 names the first entry that is missing, on another matter,
    or no longer a draft.
    """
    service = InvoiceService(session)

    invoice = await service.assemble_invoice(
        matter_id=request.matter_id,
        time_entry_ids=request.time_entry_ids,
        invoice_number=request.invoice_number,
        due_date=request.due_date,
        tax_cents=request.tax_cents,
        description=request.description,
        issue_date=request.issue_date,
    )

    return _invoice_to_response(invoice)


# ============================================================================
# Read Endpoints
# ============================================================================


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    matter_id: Optional[int] = Query(None, description="Filter by matter"),
    status: Optional[InvoiceStatus] = Query(None, description="Filter by status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    session: AsyncSession = Depends(get_db),
):
    service = InvoiceService(session)
    status_value = status.value if status else None
    invoices = await service.list_invoices(
        matter_id=matter_id,
        status=status_value,
        skip=skip,
        limit=limit,
    )
    total = await service.count_invoices(matter_id=matter_id, status=status_value)
    return InvoiceListResponse(
        items=[InvoiceSummaryResponse.model_validate(i) for i in invoices],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: int,
    session: AsyncSession = Depends(get_db),
):
    service = InvoiceService(session)
    invoice = await service.get_invoice(invoice_id)
    return _invoice_to_response(invoice)


@router.get("/{invoice_id}/pdf")
async def download_invoice_pdf(
    invoice_id: int,
    session: AsyncSession = Depends(get_db),
):
    """
    Download an invoice as PDF.

    WHAT: Renders on demand; nothing is stored.
    """
    service = InvoiceService(session)
    invoice = await service.get_invoice(invoice_id)
    pdf_bytes = await service.render_pdf(invoice_id)

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="invoice-{invoice.invoice_number}.pdf"',
        },
    )


# ============================================================================
# Workflow Endpoints
# ============================================================================


@router.delete("/{invoice_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def void_invoice(
    invoice_id: int,
    session: AsyncSession = Depends(get_db),
):
    """
    Void a draft invoice.

    WHAT: Deletes the invoice and returns its entries to draft.
    """
    service = InvoiceService(session)
    await service.void_invoice(invoice_id)
    await session.commit()
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)


@router.post("/{invoice_id}/send", response_model=InvoiceResponse)
async def send_invoice(
    invoice_id: int,
    session: AsyncSession = Depends(get_db),
):
    """
    Mark a draft invoice as sent.

    WHY: Delivery happens elsewhere; this records that it happened.
    """
    service = InvoiceService(session)
    invoice = await service.mark_sent(invoice_id)
    await session.commit()
    return _invoice_to_response(invoice)


@router.post("/{invoice_id}/payments", response_model=InvoiceResponse)
async def record_payment(
    invoice_id: int,
    request: PaymentRequest,
    session: AsyncSession = Depends(get_db),
):
    """
    Record a payment received against an invoice.
    """
    service = InvoiceService(session)
    invoice = await service.record_payment(invoice_id, request.amount_cents)
    await session.commit()
    return _invoice_to_response(invoice)


@router.post("/{invoice_id}/overdue", response_model=InvoiceResponse)
async def mark_invoice_overdue(
    invoice_id: int,
    session: AsyncSession = Depends(get_db),
):
    service = InvoiceService(session)
    invoice = await service.mark_overdue(invoice_id)
    await session.commit()
    return _invoice_to_response(invoice)
