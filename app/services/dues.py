"""Due-period arithmetic for a single member.

Everything here is pure: callers pass in the member's enrollment date, its
dues records, the current fee and "now", and get the same answer every time.
"""
from datetime import datetime
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel

from app.errors import MissingEnrollmentDate
from app.models.dues import MONTHS, DuesStatus


class _Dues(Protocol):
    month: str
    year: int
    amount: float
    status: DuesStatus


class MemberDues(BaseModel):
    due_periods: int
    paid_periods: int
    pending_periods: int
    pending_amount: float
    paid_amount: float
    progress_percent: float


def period_of(now: datetime) -> tuple[str, int]:
    """Billing period (month name, year) containing ``now``."""
    return MONTHS[now.month - 1], now.year


def period_sort_key(month: str, year: int) -> tuple[int, int]:
    return year, MONTHS.index(month) if month in MONTHS else -1


def due_periods_this_year(enrolled_at: datetime, now: datetime) -> int:
    """Months billed so far this year, counting the enrollment month."""
    current_month_index = now.month - 1
    if enrolled_at.year < now.year:
        return current_month_index + 1
    if enrolled_at.year == now.year:
        return max(0, current_month_index - (enrolled_at.month - 1) + 1)
    return 0


def compute_member_dues(
    enrolled_at: Optional[datetime],
    records: Iterable[_Dues],
    fee: float,
    now: datetime,
    member_id: str = "",
) -> MemberDues:
    """Due, paid and pending periods for one member as of ``now``.

    Raises MissingEnrollmentDate when ``enrolled_at`` is None; such members
    are never reported as owing zero.
    """
    if enrolled_at is None:
        raise MissingEnrollmentDate(member_id)
    records = list(records)
    due = due_periods_this_year(enrolled_at, now)
    paid = sum(1 for r in records if r.year == now.year and r.status == DuesStatus.PAID)
    pending = max(0, due - paid)
    progress = 100.0 if due == 0 else min(100.0, paid / due * 100)
    return MemberDues(
        due_periods=due,
        paid_periods=paid,
        pending_periods=pending,
        pending_amount=round(pending * fee, 2),
        paid_amount=round(sum(r.amount for r in records if r.status == DuesStatus.PAID), 2),
        progress_percent=round(progress, 2),
    )
