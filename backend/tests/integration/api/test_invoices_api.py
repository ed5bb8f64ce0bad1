"""
Integration tests for invoice endpoints.

WHAT: Draft selection, assembly, the payment workflow and PDF download.
"""

import pytest
import pytest_asyncio
from datetime import datetime

from tests.factories import MatterFactory, TimeEntryFactory


@pytest_asyncio.fixture
async def drafts(db_session, test_matter, test_attorney):
    return [
        await TimeEntryFactory.create(
            db_session, test_matter, test_attorney, raw_minutes=60, rate_cents=35000,
            created_at=datetime(2026, 3, 2, 9, 0),
        ),
        await TimeEntryFactory.create(
            db_session, test_matter, test_attorney, raw_minutes=18, rate_cents=35000,
            created_at=datetime(2026, 3, 9, 9, 0),
        ),
    ]


async def _assemble(client, matter, entries, number="INV-100", **extra):
    return await client.post(
        "/api/invoices/from-entries",
        json={
            "matter_id": matter.id,
            "time_entry_ids": [e.id for e in entries],
            "invoice_number": number,
            **extra,
        },
    )


class TestDraftEntries:
    """Tests for GET /api/invoices/draft-entries/{matter_id}."""

    @pytest.mark.asyncio
    async def test_date_filter(self, client, test_matter, drafts):
        response = await client.get(
            f"/api/invoices/draft-entries/{test_matter.id}",
            params={"start_date": "2026-03-05", "end_date": "2026-03-31"},
        )

        assert response.status_code == 200
        assert [e["id"] for e in response.json()] == [drafts[1].id]

    @pytest.mark.asyncio
    async def test_unknown_matter(self, client):
        response = await client.get("/api/invoices/draft-entries/9999")
        assert response.status_code == 404


class TestAssembly:
    """Tests for POST /api/invoices/from-entries."""

    @pytest.mark.asyncio
    async def test_assemble(self, client, test_matter, drafts):
        response = await _assemble(
            client, test_matter, drafts, issue_date="2026-03-31", due_date="2026-04-30",
            tax_cents=1000,
        )

        assert response.status_code == 201
        invoice = response.json()
        assert invoice["status"] == "draft"
        assert invoice["subtotal_cents"] == 35000 + 10500
        assert invoice["total_cents"] == 46500
        assert invoice["balance_cents"] == 46500
        assert invoice["client_name"] == test_matter.client_name
        assert sorted(invoice["time_entry_ids"]) == sorted(e.id for e in drafts)
        assert all(e["status"] == "billed" for e in invoice["time_entries"])

        remaining = await client.get(f"/api/invoices/draft-entries/{test_matter.id}")
        assert remaining.json() == []

    @pytest.mark.asyncio
    async def test_reselection_names_the_entry(self, client, test_matter, drafts):
        await _assemble(client, test_matter, drafts[:1], number="INV-101")

        response = await _assemble(client, test_matter, drafts, number="INV-102")

        assert response.status_code == 400
        error = response.json()
        assert error["error"] == "InvalidSelectionError"
        assert error["details"]["entry_id"] == drafts[0].id

    @pytest.mark.asyncio
    async def test_entry_from_other_matter(self, client, db_session, test_matter, test_attorney, drafts):
        other = await MatterFactory.create(db_session, name="Other matter")

        response = await _assemble(client, other, drafts, number="INV-103")

        assert response.status_code == 400
        assert response.json()["details"]["reason"] == "wrong_matter"

    @pytest.mark.asyncio
    async def test_empty_selection_rejected(self, client, test_matter):
        response = await _assemble(client, test_matter, [], number="INV-104")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_due_date_before_issue_date_rejected(self, client, test_matter, drafts):
        response = await _assemble(
            client, test_matter, drafts, number="INV-105",
            issue_date="2026-03-31", due_date="2026-03-01",
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_duplicate_invoice_number(self, client, test_matter, drafts):
        await _assemble(client, test_matter, drafts[:1], number="INV-106")

        response = await _assemble(client, test_matter, drafts[1:], number="INV-106")

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"


class TestWorkflow:
    """Tests for reading, voiding, sending and paying invoices."""

    @pytest.mark.asyncio
    async def test_get_and_list(self, client, test_matter, drafts):
        created = (await _assemble(client, test_matter, drafts)).json()

        single = await client.get(f"/api/invoices/{created['id']}")
        listing = await client.get("/api/invoices", params={"matter_id": test_matter.id})
        filtered = await client.get("/api/invoices", params={"status": "paid"})

        assert single.json()["invoice_number"] == "INV-100"
        assert listing.json()["total"] == 1
        assert listing.json()["items"][0]["id"] == created["id"]
        assert filtered.json()["items"] == []

    @pytest.mark.asyncio
    async def test_missing_invoice(self, client):
        response = await client.get("/api/invoices/9999")

        assert response.status_code == 404
        assert response.json()["error"] == "InvoiceNotFoundError"

    @pytest.mark.asyncio
    async def test_void_releases_entries(self, client, test_matter, drafts):
        created = (await _assemble(client, test_matter, drafts)).json()

        response = await client.delete(f"/api/invoices/{created['id']}")

        assert response.status_code == 204
        remaining = await client.get(f"/api/invoices/draft-entries/{test_matter.id}")
        assert sorted(e["id"] for e in remaining.json()) == sorted(e.id for e in drafts)

    @pytest.mark.asyncio
    async def test_send_pay_and_void_refused(self, client, test_matter, drafts):
        created = (await _assemble(client, test_matter, drafts)).json()
        invoice_id = created["id"]

        sent = await client.post(f"/api/invoices/{invoice_id}/send")
        assert sent.json()["status"] == "sent"
        assert sent.json()["sent_at"] is not None

        void = await client.delete(f"/api/invoices/{invoice_id}")
        assert void.status_code == 409

        partial = await client.post(
            f"/api/invoices/{invoice_id}/payments", json={"amount_cents": 5000}
        )
        assert partial.json()["status"] == "partial"
        assert partial.json()["balance_cents"] == 45500 - 5000

        overdue = await client.post(f"/api/invoices/{invoice_id}/overdue")
        assert overdue.json()["status"] == "overdue"

        paid = await client.post(
            f"/api/invoices/{invoice_id}/payments", json={"amount_cents": 40500}
        )
        assert paid.json()["status"] == "paid"
        assert paid.json()["balance_cents"] == 0

    @pytest.mark.asyncio
    async def test_payment_validation(self, client, test_matter, drafts):
        created = (await _assemble(client, test_matter, drafts)).json()
        invoice_id = created["id"]

        on_draft = await client.post(
            f"/api/invoices/{invoice_id}/payments", json={"amount_cents": 100}
        )
        non_positive = await client.post(
            f"/api/invoices/{invoice_id}/payments", json={"amount_cents": 0}
        )

        assert on_draft.status_code == 400
        assert non_positive.status_code == 400

    @pytest.mark.asyncio
    async def test_pdf_download(self, client, test_matter, drafts):
        created = (await _assemble(client, test_matter, drafts)).json()

        response = await client.get(f"/api/invoices/{created['id']}/pdf")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "invoice-INV-100.pdf" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")
