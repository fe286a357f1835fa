"""Member lifecycle: creation with first bill, deletion with dues cascade."""
import logging
from datetime import datetime
from typing import Optional

from pymongo.errors import DuplicateKeyError

from app.api.deps import get_password_hash
from app.db import to_object_id
from app.errors import ConflictError, NotFoundError
from app.models.dues import DuesRecord, DuesStatus
from app.models.member import Member, MemberCreate, MemberRole
from app.models.settings import BillingSettings
from app.services.billing import insert_unique, require_fee
from app.services.dues import period_of

logger = logging.getLogger(__name__)


async def create_member(
    data: MemberCreate,
    billing_settings: Optional[BillingSettings],
    now: Optional[datetime] = None,
) -> tuple[Member, DuesRecord]:
    """Create a member and their Pending dues record for the current period."""
    fee = require_fee(billing_settings)
    existing = await Member.find_one({"email": data.email})
    if existing:
        raise ConflictError("An account with this email already exists.")

    now = now or datetime.utcnow()
    member = Member(
        email=data.email,
        hashed_password=get_password_hash(data.password),
        role=MemberRole.MEMBER,
        full_name=data.full_name,
        phone=data.phone,
        enrolled_at=data.enrolled_at or now,
    )
    try:
        await member.insert()
    except DuplicateKeyError:
        raise ConflictError("An account with this email already exists.")

    month, year = period_of(now)
    record = DuesRecord(
        member_id=str(member.id),
        member_name=member.full_name,
        month=month,
        year=year,
        amount=fee,
        status=DuesStatus.PENDING,
    )
    await insert_unique(record)
    logger.info("Created member %s with initial bill for %s %s", member.email, month, year)
    return member, record


async def delete_member(member_id: str) -> int:
    """Delete a member and all their dues records; returns records removed."""
    member = await Member.get(to_object_id(member_id, "Member"))
    if not member:
        raise NotFoundError("Member not found")
    result = await DuesRecord.find({"member_id": str(member.id)}).delete()
    deleted = result.deleted_count if result else 0
    await member.delete()
    logger.info("Deleted member %s and %d dues record(s)", member.email, deleted)
    return deleted
