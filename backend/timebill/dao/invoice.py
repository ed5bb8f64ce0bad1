"""
Invoice Data Access Object (DAO).

WHAT: Database operations for the Invoice model.

WHY: Keeps invoice lookups (by number, by matter, by status) out of the
assembly and payment logic.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from timebill.dao.base import BaseDAO
from timebill.models.invoice import Invoice, InvoiceStatus, PAYABLE_STATUSES


class InvoiceDAO(BaseDAO[Invoice]):
    """Data Access Object for Invoice model."""

    def __init__(self, session: AsyncSession):
        """
        Initialize InvoiceDAO.

        Args:
            session: Async database session
        """
        super().__init__(Invoice, session)

    async def get_by_invoice_number(self, invoice_number: str) -> Optional[Invoice]:
        """
        Get invoice by its number.

        WHY: Invoice numbers are caller supplied and must be unique; this is
        the pre-check before the unique constraint is relied on.

        Args:
            invoice_number: Invoice number (e.g., "2024-0001")

        Returns:
            Invoice or None if not found
        """
        return await self.get_by_field("invoice_number", invoice_number)

    async def list_invoices(
        self,
        matter_id: Optional[int] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        """
        List invoices, newest first.

        Args:
            matter_id: Optional matter filter
            status: Optional status filter
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of invoices
        """
        query = select(Invoice)
        if matter_id is not None:
            query = query.where(Invoice.matter_id == matter_id)
        if status:
            query = query.where(Invoice.status == status)

        result = await self.session.execute(
            query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_invoices(
        self,
        matter_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> int:
        """Number of invoices matching the list filters, ignoring pagination."""
        filters = {}
        if matter_id is not None:
            filters["matter_id"] = matter_id
        if status:
            filters["status"] = status
        return await self.count(**filters)

    async def apply_payment(
        self,
        invoice_id: int,
        amount_cents: int,
        paid_at: datetime,
    ) -> bool:
        """
        Add a payment in a single conditional UPDATE.

        WHY: Two payments arriving together must both count. The new totals
        are computed from the row's current values, and the guard refuses a
        payment once the invoice is no longer payable or the balance is
        smaller than the amount.

        Args:
            invoice_id: Invoice ID
            amount_cents: Amount received, in cents
            paid_at: Stamped when the balance reaches zero

        Returns:
            True if the payment was applied, False if the guard refused it
        """
        settles = Invoice.balance_cents == amount_cents
        result = await self.session.execute(
            update(Invoice)
            .where(
                Invoice.id == invoice_id,
                Invoice.status.in_(PAYABLE_STATUSES),
                Invoice.balance_cents >= amount_cents,
            )
            .values(
                amount_paid_cents=Invoice.amount_paid_cents + amount_cents,
                balance_cents=Invoice.balance_cents - amount_cents,
                status=case(
                    (settles, InvoiceStatus.PAID.value),
                    else_=InvoiceStatus.PARTIAL.value,
                ),
                paid_at=case((settles, paid_at), else_=Invoice.paid_at),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
