"""
Unit tests for BillingCodeService.

WHAT: Billing code CRUD and the role rate table.

WHY: Verifies that codes stay unique, rates never go negative and a code
referenced by time entries survives deletion as an inactive code.
"""

import pytest

from timebill.core.exceptions import BillingCodeNotFoundError, ValidationError
from timebill.services.billing_code_service import BillingCodeService
from tests.factories import BillingCodeFactory, TimeEntryFactory, UserFactory


class TestBillingCodes:
    """Tests for billing code administration."""

    @pytest.mark.asyncio
    async def test_create_code(self, db_session):
        service = BillingCodeService(db_session)

        code = await service.create_code(" L110 ", "Fact Investigation", fixed_rate_cents=20000)

        assert code.id is not None
        assert code.code == "L110"
        assert code.fixed_rate_cents == 20000
        assert code.override_role is None
        assert code.active is True

    @pytest.mark.asyncio
    async def test_create_rejects_duplicate_blank_and_negative(self, db_session):
        service = BillingCodeService(db_session)
        await service.create_code("L120", "Analysis/Strategy")

        with pytest.raises(ValidationError):
            await service.create_code("L120", "Again")
        with pytest.raises(ValidationError):
            await service.create_code("  ", "Blank")
        with pytest.raises(ValidationError):
            await service.create_code("L130", "Negative", fixed_rate_cents=-100)

    @pytest.mark.asyncio
    async def test_list_codes_active_only(self, db_session):
        await BillingCodeFactory.create(db_session, code="B200")
        await BillingCodeFactory.create(db_session, code="A100")
        await BillingCodeFactory.create(db_session, code="C300", active=False)
        service = BillingCodeService(db_session)

        all_codes = await service.list_codes()
        active = await service.list_codes(active_only=True)

        assert [c.code for c in all_codes] == ["A100", "B200", "C300"]
        assert [c.code for c in active] == ["A100", "B200"]

    @pytest.mark.asyncio
    async def test_get_missing_code(self, db_session):
        with pytest.raises(BillingCodeNotFoundError):
            await BillingCodeService(db_session).get_code(9999)

    @pytest.mark.asyncio
    async def test_update_code(self, db_session):
        code = await BillingCodeFactory.create(db_session, code="L210")
        service = BillingCodeService(db_session)

        updated = await service.update_code(
            code.id,
            {"label": "Pleadings", "override_role": "Partner", "id": 12345},
        )

        assert updated.id == code.id
        assert updated.label == "Pleadings"
        assert updated.override_role == "Partner"

    @pytest.mark.asyncio
    async def test_update_rejects_taken_code(self, db_session):
        await BillingCodeFactory.create(db_session, code="L210")
        other = await BillingCodeFactory.create(db_session, code="L220")
        service = BillingCodeService(db_session)

        with pytest.raises(ValidationError):
            await service.update_code(other.id, {"code": "L210"})

        unchanged = await service.update_code(other.id, {"code": "L220"})
        assert unchanged.code == "L220"

    @pytest.mark.asyncio
    async def test_update_rejects_negative_rate(self, db_session):
        code = await BillingCodeFactory.create(db_session)

        with pytest.raises(ValidationError):
            await BillingCodeService(db_session).update_code(code.id, {"fixed_rate_cents": -1})

    @pytest.mark.asyncio
    async def test_delete_unused_code(self, db_session):
        code = await BillingCodeFactory.create(db_session)
        service = BillingCodeService(db_session)

        assert await service.delete_code(code.id) is True

        with pytest.raises(BillingCodeNotFoundError):
            await service.get_code(code.id)

    @pytest.mark.asyncio
    async def test_delete_used_code_deactivates_it(self, db_session, test_matter):
        code = await BillingCodeFactory.create(db_session)
        user = await UserFactory.create(db_session)
        await TimeEntryFactory.create(db_session, test_matter, user, billing_code_id=code.id)
        service = BillingCodeService(db_session)

        assert await service.delete_code(code.id) is False

        kept = await service.get_code(code.id)
        assert kept.active is False


class TestRoleRates:
    """Tests for the role rate table."""

    @pytest.mark.asyncio
    async def test_upsert_creates_then_updates(self, db_session):
        service = BillingCodeService(db_session)

        created = await service.upsert_role_rate("Paralegal", 15000)
        updated = await service.upsert_role_rate("Paralegal", 17500)

        assert updated.id == created.id
        assert updated.rate_cents == 17500
        rates = await service.list_role_rates()
        assert [(r.role, r.rate_cents) for r in rates] == [("Paralegal", 17500)]

    @pytest.mark.asyncio
    async def test_list_is_ordered_by_role(self, db_session):
        service = BillingCodeService(db_session)
        await service.upsert_role_rate("Partner", 60000)
        await service.upsert_role_rate("Associate", 27500)

        rates = await service.list_role_rates()

        assert [r.role for r in rates] == ["Associate", "Partner"]

    @pytest.mark.asyncio
    async def test_zero_rate_is_accepted(self, db_session):
        role_rate = await BillingCodeService(db_session).upsert_role_rate("Intern", 0)
        assert role_rate.rate_cents == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role, rate", [("", 10000), ("Clerk", -1), ("Clerk", None)])
    async def test_invalid_role_rates(self, db_session, role, rate):
        with pytest.raises(ValidationError):
            await BillingCodeService(db_session).upsert_role_rate(role, rate)
