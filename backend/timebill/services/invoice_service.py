"""
Invoice Service.

WHAT: Assembles invoices from draft time entries and manages their
payment workflow.

WHY: Invoice assembly is where time becomes a bill. It must be:
1. All or nothing: every selected entry is billed, or none is
2. Exclusive: two assemblies can never bill the same entry
3. Exact: the subtotal is the sum of the locked entries' amounts

HOW: assemble_invoice locks the selected rows, validates them, creates the
invoice and moves the entries to billed with an UPDATE conditioned on
their still being drafts. If the row count comes back short, another
assembly got there first: the transaction is rolled back and the whole
operation retried once, and the retry reports the entry that is no
longer available. The operation commits its own transaction.
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.core.config import settings
from timebill.core.exceptions import (
    ImmutableError,
    InvalidSelectionError,
    InvoiceNotFoundError,
    MatterNotFoundError,
    ValidationError,
)
from timebill.dao.invoice import InvoiceDAO
from timebill.dao.time_entry import TimeEntryDAO
from timebill.dao.user import MatterDAO
from timebill.models.invoice import Invoice, InvoiceStatus, PAYABLE_STATUSES
from timebill.models.time_entry import TimeEntry, TimeEntryStatus
from timebill.services import billing
from timebill.services.pdf_service import PDFService

logger = logging.getLogger(__name__)

ASSEMBLY_ATTEMPTS = 2


class _SelectionChanged(Exception):
    """Internal signal: the conditional update billed fewer rows than selected."""


class InvoiceService:
    """
    Service for invoice operations.

    WHAT: Assembly, voiding, status changes, payments and PDF rendering.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize InvoiceService.

        Args:
            session: Async database session
        """
        self.session = session
        self.invoice_dao = InvoiceDAO(session)
        self.entry_dao = TimeEntryDAO(session)
        self.matter_dao = MatterDAO(session)

    # ========================================================================
    # Reads
    # ========================================================================

    async def get_invoice(self, invoice_id: int) -> Invoice:
        """
        Get an invoice by ID.

        Raises:
            InvoiceNotFoundError: If not found
        """
        invoice = await self.invoice_dao.get_by_id(invoice_id)
        if not invoice:
            raise InvoiceNotFoundError(invoice_id=invoice_id)
        return invoice

    async def list_invoices(
        self,
        matter_id: Optional[int] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        return await self.invoice_dao.list_invoices(
            matter_id=matter_id, status=status, skip=skip, limit=limit
        )

    async def count_invoices(
        self,
        matter_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> int:
        return await self.invoice_dao.count_invoices(matter_id=matter_id, status=status)

    async def draft_entries(
        self,
        matter_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TimeEntry]:
        """
        List draft entries of a matter available for invoicing.

        WHAT: Pure filter on status and an optional inclusive created_at
        date range. No side effects.

        Raises:
            MatterNotFoundError: If the matter does not exist
            ValidationError: If start_date is after end_date
        """
        if start_date and end_date and start_date > end_date:
            raise ValidationError(
                message="start_date must not be after end_date",
                start_date=start_date.isoformat(),
                end_date=end_date.isoformat(),
            )
        if not await self.matter_dao.exists(id=matter_id):
            raise MatterNotFoundError(matter_id=matter_id)
        return await self.entry_dao.get_draft_entries(matter_id, start_date, end_date)

    # ========================================================================
    # Assembly
    # ========================================================================

    async def assemble_invoice(
        self,
        matter_id: int,
        time_entry_ids: Sequence[int],
        invoice_number: str,
        due_date: Optional[date] = None,
        tax_cents: int = 0,
        description: Optional[str] = None,
        issue_date: Optional[date] = None,
    ) -> Invoice:
        """
        Create an invoice from selected draft entries.

        WHAT: Bills every selected entry and creates the invoice, atomically.

        Args:
            matter_id: Matter being invoiced
            time_entry_ids: Entries to bill (duplicates are ignored)
            invoice_number: Caller-supplied unique invoice number
            due_date: Payment due date (default: issue date + payment terms)
            tax_cents: Tax amount supplied by the caller
            description: Optional invoice description
            issue_date: Issue date (default: today, UTC)

        Returns:
            The created Invoice with its entries loaded

        Raises:
            ValidationError: Empty selection, negative tax, duplicate number
            MatterNotFoundError: If the matter does not exist
            InvalidSelectionError: An entry is missing, on another matter,
                or not a draft (the entry id is in the error context)
        """
        entry_ids = list(dict.fromkeys(time_entry_ids))
        if not entry_ids:
            raise ValidationError(message="No time entries selected")
        if tax_cents is None:
            tax_cents = 0
        if tax_cents < 0:
            raise ValidationError(message="Tax cannot be negative", tax_cents=tax_cents)
        invoice_number = (invoice_number or "").strip()
        if not invoice_number:
            raise ValidationError(message="Invoice number is required")

        if not await self.matter_dao.exists(id=matter_id):
            raise MatterNotFoundError(matter_id=matter_id)

        issue_date = issue_date or billing.utcnow().date()
        if due_date is None:
            due_date = issue_date + timedelta(days=settings.DEFAULT_PAYMENT_TERMS_DAYS)

        for attempt in range(1, ASSEMBLY_ATTEMPTS + 1):
            try:
                invoice_id = await self._assemble_once(
                    matter_id=matter_id,
                    entry_ids=entry_ids,
                    invoice_number=invoice_number,
                    tax_cents=tax_cents,
                    description=description,
                    issue_date=issue_date,
                    due_date=due_date,
                )
                await self.session.commit()
                break
            except (_SelectionChanged, IntegrityError) as exc:
                await self.session.rollback()
                logger.warning(
                    "Invoice %s assembly conflicted (attempt %d of %d): %s",
                    invoice_number,
                    attempt,
                    ASSEMBLY_ATTEMPTS,
                    exc.__class__.__name__,
                )
        else:
            raise InvalidSelectionError(
                message="Selected time entries changed during invoicing",
                matter_id=matter_id,
                invoice_number=invoice_number,
            )

        await self.entry_dao.reload_many(entry_ids)
        invoice = await self.invoice_dao.reload(invoice_id)
        await self.session.refresh(invoice, attribute_names=["time_entries"])

        logger.info(
            "Invoice %s assembled for matter %s: %d entries, total_cents=%s",
            invoice.invoice_number,
            matter_id,
            len(entry_ids),
            invoice.total_cents,
        )
        return invoice

    async def _assemble_once(
        self,
        matter_id: int,
        entry_ids: List[int],
        invoice_number: str,
        tax_cents: int,
        description: Optional[str],
        issue_date: date,
        due_date: date,
    ) -> int:
        if await self.invoice_dao.get_by_invoice_number(invoice_number):
            raise ValidationError(
                message="Invoice number already exists",
                invoice_number=invoice_number,
            )

        locked = {entry.id: entry for entry in await self.entry_dao.lock_entries(entry_ids)}
        for entry_id in entry_ids:
            entry = locked.get(entry_id)
            if entry is None:
                raise InvalidSelectionError(
                    message=f"Time entry {entry_id} does not exist",
                    entry_id=entry_id,
                    reason="not_found",
                )
            if entry.matter_id != matter_id:
                raise InvalidSelectionError(
                    message=f"Time entry {entry_id} belongs to another matter",
                    entry_id=entry_id,
                    reason="wrong_matter",
                )
            if entry.status != TimeEntryStatus.DRAFT.value:
                raise InvalidSelectionError(
                    message=f"Time entry {entry_id} is {entry.status}, not draft",
                    entry_id=entry_id,
                    reason="not_draft",
                    status=entry.status,
                )

        subtotal = sum(locked[entry_id].amount_cents for entry_id in entry_ids)
        total = subtotal + tax_cents

        invoice = await self.invoice_dao.create(
            invoice_number=invoice_number,
            matter_id=matter_id,
            description=description,
            subtotal_cents=subtotal,
            tax_cents=tax_cents,
            total_cents=total,
            amount_paid_cents=0,
            balance_cents=total,
            status=InvoiceStatus.DRAFT.value,
            issue_date=issue_date,
            due_date=due_date,
        )

        billed = await self.entry_dao.mark_billed(entry_ids, matter_id, invoice.id)
        if billed != len(entry_ids):
            raise _SelectionChanged(f"billed {billed} of {len(entry_ids)} entries")

        return invoice.id

    # ========================================================================
    # Voiding and status changes
    # ========================================================================

    async def void_invoice(self, invoice_id: int) -> int:
        """
        Void a draft invoice.

        WHAT: Deletes the invoice and returns its entries to draft, clearing
        their invoice link, in one transaction.

        Returns:
            Number of entries released

        Raises:
            InvoiceNotFoundError: If not found
            ImmutableError: If the invoice is no longer a draft
        """
        invoice = await self.get_invoice(invoice_id)
        if not invoice.is_editable:
            raise ImmutableError(
                message="Only draft invoices can be voided",
                invoice_id=invoice_id,
                status=invoice.status,
            )

        entry_ids = invoice.time_entry_ids
        released = await self.entry_dao.release_from_invoice(invoice_id)
        await self.invoice_dao.delete(invoice_id)
        await self.entry_dao.reload_many(entry_ids)

        logger.info(
            "Invoice %s voided: %d entries returned to draft",
            invoice.invoice_number,
            released,
        )
        return released

    async def mark_sent(self, invoice_id: int, now: Optional[datetime] = None) -> Invoice:
        """
        Mark a draft invoice as sent.

        Raises:
            ValidationError: If the invoice is not a draft
        """
        invoice = await self.get_invoice(invoice_id)
        if invoice.status != InvoiceStatus.DRAFT.value:
            raise ValidationError(
                message="Only draft invoices can be sent",
                invoice_id=invoice_id,
                status=invoice.status,
            )
        invoice.status = InvoiceStatus.SENT.value
        invoice.sent_at = now or billing.utcnow()
        await self.session.flush()
        await self.session.refresh(invoice)
        logger.info("Invoice %s sent", invoice.invoice_number)
        return invoice

    async def mark_overdue(self, invoice_id: int) -> Invoice:
        """
        Mark a sent or partially paid invoice as overdue.

        Raises:
            ValidationError: From any other status
        """
        invoice = await self.get_invoice(invoice_id)
        if invoice.status not in (InvoiceStatus.SENT.value, InvoiceStatus.PARTIAL.value):
            raise ValidationError(
                message="Only sent or partially paid invoices can become overdue",
                invoice_id=invoice_id,
                status=invoice.status,
            )
        invoice.status = InvoiceStatus.OVERDUE.value
        await self.session.flush()
        await self.session.refresh(invoice)
        return invoice

    @staticmethod
    def _check_payable(invoice: Invoice, amount_cents: int) -> None:
        if invoice.status not in PAYABLE_STATUSES:
            raise ValidationError(
                message=f"Cannot record a payment on a {invoice.status} invoice",
                invoice_id=invoice.id,
                status=invoice.status,
            )
        if amount_cents > invoice.balance_cents:
            raise ValidationError(
                message="Payment exceeds the outstanding balance",
                invoice_id=invoice.id,
                amount_cents=amount_cents,
                balance_cents=invoice.balance_cents,
            )

    async def record_payment(
        self,
        invoice_id: int,
        amount_cents: int,
        now: Optional[datetime] = None,
    ) -> Invoice:
        """
        Record a payment against an invoice.

        WHAT: Adds to amount_paid_cents and recomputes the balance; the
        invoice becomes partial, or paid once the balance reaches zero.
        Payment processing itself happens elsewhere.

        Args:
            invoice_id: Invoice ID
            amount_cents: Amount received, in cents
            now: Payment time override

        Returns:
            Updated Invoice

        Raises:
            ValidationError: Non-positive amount, amount above balance, or
                an invoice that is not awaiting payment
        """
        if amount_cents is None or amount_cents <= 0:
            raise ValidationError(
                message="Payment amount must be positive",
                amount_cents=amount_cents,
            )

        invoice = await self.get_invoice(invoice_id)
        self._check_payable(invoice, amount_cents)

        applied = await self.invoice_dao.apply_payment(
            invoice_id, amount_cents, now or billing.utcnow()
        )
        invoice = await self.invoice_dao.reload(invoice_id)
        if not applied:
            # Another payment or status change landed after our read
            self._check_payable(invoice, amount_cents)
            raise ValidationError(
                message="Invoice changed while recording the payment; retry",
                invoice_id=invoice_id,
            )

        logger.info(
            "Payment of %s cents on invoice %s; balance_cents=%s status=%s",
            amount_cents,
            invoice.invoice_number,
            invoice.balance_cents,
            invoice.status,
        )
        return invoice

    # ========================================================================
    # Documents
    # ========================================================================

    async def render_pdf(self, invoice_id: int) -> bytes:
        """
        Render an invoice as PDF.

        Returns:
            PDF file as bytes
        """
        invoice = await self.get_invoice(invoice_id)
        return PDFService().generate_invoice_pdf(invoice, invoice.matter, invoice.time_entries)
