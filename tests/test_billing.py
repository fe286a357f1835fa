"""Tests for monthly bill generation."""
from datetime import datetime
from types import SimpleNamespace

import pytest
from pymongo.errors import DuplicateKeyError

from app.errors import ConfigurationError
from app.models.dues import DuesStatus
from app.models.member import MemberRole
from app.services.billing import display_fee, generate_monthly_bills, insert_unique, require_fee
from tests.conftest import add_dues, add_member

NOW = datetime(2024, 8, 1, 0, 5)


def _settings(fee):
    return SimpleNamespace(monthly_fee=fee)


class TestFee:

    def test_missing_settings_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            require_fee(None)

    @pytest.mark.parametrize("fee", [0, -10, None])
    def test_non_positive_fee_is_configuration_error(self, fee):
        with pytest.raises(ConfigurationError):
            require_fee(_settings(fee))

    def test_display_fee_falls_back(self):
        assert display_fee(None, 500.0) == 500.0
        assert display_fee(_settings(0), 500.0) == 500.0
        assert display_fee(_settings(750), 500.0) == 750.0


class TestGenerateMonthlyBills:

    async def test_creates_one_pending_record_per_member(self, ledger):
        asha = add_member(ledger.members, "Asha Rao")
        ravi = add_member(ledger.members, "Ravi Kumar")
        result = await generate_monthly_bills(_settings(500), now=NOW)

        assert (result.month, result.year, result.created, result.already_billed) == ("August", 2024, 2, 0)
        assert sorted(d.member_id for d in ledger.dues.docs) == sorted([str(asha.id), str(ravi.id)])
        for d in ledger.dues.docs:
            assert d.status == DuesStatus.PENDING
            assert d.amount == 500.0
            assert (d.month, d.year) == ("August", 2024)

    async def test_second_run_is_a_noop(self, ledger):
        add_member(ledger.members, "Asha Rao")
        add_member(ledger.members, "Ravi Kumar")
        await generate_monthly_bills(_settings(500), now=NOW)
        second = await generate_monthly_bills(_settings(500), now=NOW)

        assert second.created == 0
        assert second.already_billed == 2
        assert len(ledger.dues.docs) == 2

    async def test_bills_every_non_admin_member(self, ledger):
        add_member(ledger.members, "Admin User", role=MemberRole.ADMIN)
        flagged = add_member(ledger.members, "Gone Member")
        flagged.is_active = False
        add_member(ledger.members, "Asha Rao")

        result = await generate_monthly_bills(_settings(500), now=NOW)
        assert result.created == 2
        assert sorted(d.member_name for d in ledger.dues.docs) == ["Asha Rao", "Gone Member"]

    async def test_amount_is_frozen_at_creation(self, ledger):
        asha = add_member(ledger.members, "Asha Rao")
        add_dues(ledger.dues, asha, "July", 2024, amount=400.0)
        await generate_monthly_bills(_settings(600), now=NOW)

        amounts = {(d.month, d.amount) for d in ledger.dues.docs}
        assert amounts == {("July", 400.0), ("August", 600.0)}

    async def test_missing_fee_aborts_before_any_write(self, ledger):
        add_member(ledger.members, "Asha Rao")
        with pytest.raises(ConfigurationError):
            await generate_monthly_bills(_settings(0), now=NOW)
        with pytest.raises(ConfigurationError):
            await generate_monthly_bills(None, now=NOW)
        assert ledger.dues.docs == []


class TestInsertUnique:

    async def test_duplicate_key_reports_false(self):
        class Record:
            member_id, month, year = "m1", "August", 2024

            async def insert(self):
                raise DuplicateKeyError("E11000 duplicate key")

        assert await insert_unique(Record()) is False
