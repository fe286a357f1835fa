"""Ledger reports: collected vs pending vs spent, per-period buckets, member rows, CSV/Excel export."""
import io
from collections import defaultdict
from datetime import datetime
from typing import Any, Iterable, Optional

import pandas as pd
from pydantic import BaseModel, Field

from app.errors import MissingEnrollmentDate
from app.models.dues import DuesStatus
from app.services.dues import MemberDues, compute_member_dues, period_sort_key


class PeriodBucket(BaseModel):
    period: str
    paid: float = 0.0
    pending: float = 0.0


class MemberRow(BaseModel):
    id: str
    name: str
    email: str
    status: str  # "Active" once any period is paid, else "Pending"
    paid_amount: float
    pending_amount: Optional[float] = None  # None when enrollment date is missing
    progress_percent: Optional[float] = None
    due_periods: Optional[int] = None
    paid_periods: Optional[int] = None
    with_effect_from: str = ""
    up_to: str = ""
    data_issue: Optional[str] = None


class LedgerSummary(BaseModel):
    monthly_fee: float
    total_members: int
    active_members: int
    pending_members: int
    total_collected: float
    total_pending: float
    total_expenditure: float
    net_balance: float
    by_period: list[PeriodBucket] = Field(default_factory=list)
    members_missing_enrollment: list[str] = Field(default_factory=list)


def group_by_member(records: Iterable[Any]) -> dict[str, list[Any]]:
    grouped: dict[str, list[Any]] = defaultdict(list)
    for r in records:
        grouped[r.member_id].append(r)
    return grouped


def period_buckets(records: Iterable[Any]) -> list[PeriodBucket]:
    """Paid/Pending sums per billing period, oldest first."""
    buckets: dict[tuple[int, int], PeriodBucket] = {}
    for r in records:
        key = period_sort_key(r.month, r.year)
        bucket = buckets.setdefault(key, PeriodBucket(period=f"{r.month} {r.year}"))
        if r.status == DuesStatus.PAID:
            bucket.paid = round(bucket.paid + r.amount, 2)
        else:
            bucket.pending = round(bucket.pending + r.amount, 2)
    return [buckets[k] for k in sorted(buckets)]


def member_row(member: Any, records: list[Any], fee: float, now: datetime) -> MemberRow:
    paid = sorted(
        (r for r in records if r.status == DuesStatus.PAID),
        key=lambda r: period_sort_key(r.month, r.year),
    )
    row = MemberRow(
        id=str(member.id),
        name=member.full_name,
        email=str(member.email),
        status="Active" if paid else "Pending",
        paid_amount=round(sum(r.amount for r in paid), 2),
        with_effect_from=f"{paid[0].month} {paid[0].year}" if paid else "",
        up_to=f"{paid[-1].month} {paid[-1].year}" if paid else "",
    )
    try:
        dues: MemberDues = compute_member_dues(member.enrolled_at, records, fee, now, member_id=row.id)
    except MissingEnrollmentDate as e:
        row.data_issue = e.message
        return row
    row.pending_amount = dues.pending_amount
    row.progress_percent = dues.progress_percent
    row.due_periods = dues.due_periods
    row.paid_periods = dues.paid_periods
    return row


def member_rows(members: Iterable[Any], records: Iterable[Any], fee: float, now: datetime) -> list[MemberRow]:
    grouped = group_by_member(records)
    return [member_row(m, grouped.get(str(m.id), []), fee, now) for m in members]


def summarize(
    members: Iterable[Any],
    records: Iterable[Any],
    expenditures: Iterable[Any],
    fee: float,
    now: datetime,
) -> LedgerSummary:
    """Totals for the admin dashboard.

    Pending is the sum of each member's computed pending amount, so months
    that were never billed still count. Members without an enrollment date
    are left out of pending totals and listed in members_missing_enrollment.
    """
    records = list(records)
    rows = member_rows(members, records, fee, now)
    collected = round(sum(r.amount for r in records if r.status == DuesStatus.PAID), 2)
    spent = round(sum(e.amount for e in expenditures), 2)
    pending = round(sum(r.pending_amount or 0 for r in rows), 2)
    return LedgerSummary(
        monthly_fee=fee,
        total_members=len(rows),
        active_members=sum(1 for r in rows if r.status == "Active"),
        pending_members=sum(1 for r in rows if r.pending_amount),
        total_collected=collected,
        total_pending=pending,
        total_expenditure=spent,
        net_balance=round(collected - spent, 2),
        by_period=period_buckets(records),
        members_missing_enrollment=[r.id for r in rows if r.data_issue],
    )


CSV_HEADERS = ["ID", "Name", "Email", "Status", "Paid Amount", "Pending Amount", "With Effect From", "Up To"]


def members_frame(rows: Iterable[MemberRow]) -> pd.DataFrame:
    data = [
        {
            "ID": r.id,
            "Name": r.name,
            "Email": r.email,
            "Status": r.status,
            "Paid Amount": f"{r.paid_amount:.2f}",
            "Pending Amount": "" if r.pending_amount is None else f"{r.pending_amount:.2f}",
            "With Effect From": r.with_effect_from,
            "Up To": r.up_to,
        }
        for r in rows
    ]
    return pd.DataFrame(data, columns=CSV_HEADERS)


def members_csv(rows: Iterable[MemberRow]) -> str:
    stream = io.StringIO()
    members_frame(rows).to_csv(stream, index=False, lineterminator="\n")
    return stream.getvalue()


def members_xlsx(rows: Iterable[MemberRow]) -> bytes:
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        members_frame(rows).to_excel(writer, index=False, sheet_name="Members")
    return output.getvalue()
