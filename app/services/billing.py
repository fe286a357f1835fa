"""Monthly bill generation and billing-settings lookups."""
import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError

from app.errors import ConfigurationError
from app.models.dues import DuesRecord, DuesStatus
from app.models.member import Member, MemberRole
from app.models.settings import BillingSettings
from app.services.dues import period_of

logger = logging.getLogger(__name__)


class BillRunResult(BaseModel):
    month: str
    year: int
    created: int
    already_billed: int


async def get_billing_settings() -> Optional[BillingSettings]:
    return await BillingSettings.find_one()


def require_fee(billing_settings: Optional[BillingSettings]) -> float:
    """Configured monthly fee, or ConfigurationError when unset or non-positive."""
    if billing_settings is None:
        raise ConfigurationError("Billing settings not found. Set the monthly fee first.")
    fee = billing_settings.monthly_fee
    if not fee or fee <= 0:
        raise ConfigurationError("Monthly billing amount is not set or is invalid.")
    return float(fee)


def display_fee(billing_settings: Optional[BillingSettings], fallback: float) -> float:
    """Fee for read-only views; falls back to a default when unset."""
    if billing_settings is not None and billing_settings.monthly_fee and billing_settings.monthly_fee > 0:
        return float(billing_settings.monthly_fee)
    return fallback


async def insert_unique(record: DuesRecord) -> bool:
    """Insert a dues record; False when the member already has one for that period."""
    try:
        await record.insert()
    except DuplicateKeyError:
        logger.info(
            "Dues for member %s %s %s already exist (unique index)",
            record.member_id,
            record.month,
            record.year,
        )
        return False
    return True


async def billed_member_ids(month: str, year: int) -> set[str]:
    existing = await DuesRecord.find({"month": month, "year": year}).to_list()
    return {d.member_id for d in existing}


async def generate_monthly_bills(
    billing_settings: Optional[BillingSettings],
    now: Optional[datetime] = None,
) -> BillRunResult:
    """Ensure every non-admin member has a dues record for the current period.

    The fee is frozen on each created record. A missing or non-positive fee
    aborts the whole run before anything is written.
    """
    fee = require_fee(billing_settings)
    now = now or datetime.utcnow()
    month, year = period_of(now)
    logger.info("Generating monthly bills for %s %s at %.2f", month, year, fee)

    members = await Member.find({"role": MemberRole.MEMBER.value}).to_list()
    billed = await billed_member_ids(month, year)

    created = 0
    already = 0
    for member in members:
        member_id = str(member.id)
        if member_id in billed:
            logger.debug("Bill for %s for %s %s already exists", member.full_name, month, year)
            already += 1
            continue
        record = DuesRecord(
            member_id=member_id,
            member_name=member.full_name,
            month=month,
            year=year,
            amount=fee,
            status=DuesStatus.PENDING,
        )
        if await insert_unique(record):
            logger.debug("Created bill for %s for %s %s", member.full_name, month, year)
            created += 1
        else:
            already += 1

    logger.info("Monthly bills generation complete: %d created, %d already billed", created, already)
    return BillRunResult(month=month, year=year, created=created, already_billed=already)
