"""Monthly dues records: one obligation per member per billing period."""
from datetime import datetime
from enum import Enum
from typing import Annotated, Optional

from beanie import Document, Indexed
from pydantic import AfterValidator, BaseModel, Field
from pymongo import ASCENDING, IndexModel

MONTHS = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]


def normalize_month(value: str) -> str:
    """Map 'aug', 'AUGUST' or 'August' to the stored month name."""
    v = (value or "").strip().lower()
    for name in MONTHS:
        if v == name.lower() or (len(v) >= 3 and name.lower().startswith(v)):
            return name
    raise ValueError(f"Unknown month: {value!r}")


MonthName = Annotated[str, AfterValidator(normalize_month)]


class DuesStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"


class SettlementMethod(str, Enum):
    CASH = "Cash"
    ONLINE = "Online"


class DuesRecord(Document):
    """Dues document: period, frozen amount, settlement metadata."""

    member_id: Indexed(str)
    member_name: str = ""
    month: str
    year: int
    amount: float
    status: DuesStatus = DuesStatus.PENDING
    paid_at: Optional[datetime] = None
    method: Optional[SettlementMethod] = None
    receipt_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "dues"
        use_state_management = True
        indexes = [
            IndexModel(
                [("member_id", ASCENDING), ("year", ASCENDING), ("month", ASCENDING)],
                unique=True,
                name="member_period_unique",
            ),
        ]


class ManualPaymentBody(BaseModel):
    member_id: str
    month: MonthName
    year: int = Field(ge=2000, le=2100)
    amount: float = Field(gt=0)
    payment_date: datetime


class BackfillBody(BaseModel):
    member_id: str
    month: MonthName
    year: int = Field(ge=2000, le=2100)
    status: DuesStatus = DuesStatus.PENDING
    amount: Optional[float] = Field(default=None, gt=0)  # defaults to the current fee
    payment_date: Optional[datetime] = None  # only for status=Paid
