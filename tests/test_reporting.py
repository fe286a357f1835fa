"""Tests for ledger summaries, member rows and CSV export."""
from datetime import datetime
from types import SimpleNamespace

from beanie import PydanticObjectId

from app.models.dues import DuesStatus
from app.services.reporting import CSV_HEADERS, member_rows, members_csv, period_buckets, summarize

NOW = datetime(2024, 8, 20)
FEE = 500.0


def _member(name, enrolled_at=datetime(2024, 3, 1)):
    return SimpleNamespace(
        id=PydanticObjectId(),
        full_name=name,
        email=f"{name.split()[0].lower()}@example.com",
        enrolled_at=enrolled_at,
    )


def _rec(member, month, year=2024, status=DuesStatus.PENDING, amount=FEE):
    return SimpleNamespace(member_id=str(member.id), month=month, year=year, status=status, amount=amount)


def _exp(amount):
    return SimpleNamespace(description="x", amount=amount)


class TestSummarize:

    def test_collected_pending_spent_and_net(self):
        asha = _member("Asha Rao")  # due Mar-Aug = 6
        ravi = _member("Ravi Kumar", enrolled_at=datetime(2024, 7, 10))  # due Jul-Aug = 2
        records = [
            _rec(asha, "March", status=DuesStatus.PAID),
            _rec(asha, "April", status=DuesStatus.PAID),
            _rec(asha, "August"),
            _rec(ravi, "August"),
        ]

        summary = summarize([asha, ravi], records, [_exp(300.0), _exp(150.5)], FEE, NOW)

        assert summary.total_collected == 1000.0
        assert summary.total_pending == (4 + 2) * FEE  # includes months never billed
        assert summary.total_expenditure == 450.5
        assert summary.net_balance == 549.5
        assert summary.total_members == 2
        assert summary.active_members == 1
        assert summary.pending_members == 2

    def test_net_balance_can_go_negative(self):
        summary = summarize([], [], [_exp(100.0)], FEE, NOW)
        assert summary.net_balance == -100.0
        assert summary.total_pending == 0

    def test_members_without_enrollment_are_flagged_not_counted(self):
        legacy = _member("Old Timer", enrolled_at=None)
        asha = _member("Asha Rao")
        records = [_rec(legacy, "May", status=DuesStatus.PAID)]

        summary = summarize([legacy, asha], records, [], FEE, NOW)

        assert summary.members_missing_enrollment == [str(legacy.id)]
        assert summary.total_pending == 6 * FEE
        assert summary.total_collected == FEE


class TestPeriodBuckets:

    def test_chronological_with_paid_and_pending_split(self):
        m = _member("Asha Rao")
        records = [
            _rec(m, "January", 2024, status=DuesStatus.PAID),
            _rec(m, "December", 2023),
            _rec(m, "January", 2024, amount=250.0),
            _rec(m, "November", 2023, status=DuesStatus.PAID, amount=400.0),
        ]
        buckets = period_buckets(records)
        assert [(b.period, b.paid, b.pending) for b in buckets] == [
            ("November 2023", 400.0, 0.0),
            ("December 2023", 0.0, 500.0),
            ("January 2024", 500.0, 250.0),
        ]


class TestMemberRows:

    def test_active_row_tracks_paid_range(self):
        asha = _member("Asha Rao")
        records = [
            _rec(asha, "May", status=DuesStatus.PAID),
            _rec(asha, "March", status=DuesStatus.PAID),
            _rec(asha, "June"),
        ]
        (row,) = member_rows([asha], records, FEE, NOW)
        assert row.status == "Active"
        assert row.with_effect_from == "March 2024"
        assert row.up_to == "May 2024"
        assert row.paid_amount == 1000.0
        assert row.pending_amount == 4 * FEE
        assert row.data_issue is None

    def test_unpaid_member_is_pending(self):
        (row,) = member_rows([_member("Ravi Kumar")], [], FEE, NOW)
        assert row.status == "Pending"
        assert row.with_effect_from == "" and row.up_to == ""


class TestMembersCsv:

    def test_header_and_rows(self):
        asha = _member("Asha Rao")
        legacy = _member("Old Timer", enrolled_at=None)
        rows = member_rows([asha, legacy], [_rec(asha, "March", status=DuesStatus.PAID)], FEE, NOW)

        lines = members_csv(rows).split("\n")

        assert lines[0] == ",".join(CSV_HEADERS)
        assert lines[1] == f"{asha.id},Asha Rao,asha@example.com,Active,500.00,2500.00,March 2024,March 2024"
        assert lines[2] == f"{legacy.id},Old Timer,old@example.com,Pending,0.00,,,"
        assert lines[3] == ""

    def test_commas_in_names_are_quoted(self):
        rows = member_rows([_member("Rao, Asha")], [], FEE, NOW)
        assert '"Rao, Asha"' in members_csv(rows)
