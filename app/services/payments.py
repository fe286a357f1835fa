"""Settlement of dues records: cash payments, gateway webhooks, backfills."""
import logging
import time
import uuid
from datetime import datetime
from typing import Optional

from bson.errors import InvalidId
from beanie import PydanticObjectId
from pydantic import BaseModel, Field

from app.db import to_object_id, transaction
from app.errors import ConflictError, InvalidInputError, NotFoundError
from app.models.dues import BackfillBody, DuesRecord, DuesStatus, ManualPaymentBody, SettlementMethod
from app.models.member import Member
from app.models.settings import BillingSettings
from app.services.billing import insert_unique, require_fee

logger = logging.getLogger(__name__)


class OnlineSettlement(BaseModel):
    """A verified gateway payment covering one or more dues records."""

    dues_record_ids: list[str]
    gateway_payment_id: str
    amount: float
    paid_at: datetime


class SettlementResult(BaseModel):
    settled: list[str] = Field(default_factory=list)
    already_paid: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)


def cash_receipt_id() -> str:
    return f"CASH-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def _paid_fields(method: SettlementMethod, paid_at: datetime, receipt_id: str, gateway_payment_id: Optional[str] = None) -> dict:
    return {
        "status": DuesStatus.PAID.value,
        "method": method.value,
        "paid_at": paid_at,
        "receipt_id": receipt_id,
        "gateway_payment_id": gateway_payment_id,
        "updated_at": datetime.utcnow(),
    }


async def _mark_paid(record_id: PydanticObjectId, fields: dict, session=None) -> bool:
    """Flip one record Pending -> Paid. False if it was no longer Pending."""
    result = await DuesRecord.find(
        {"_id": record_id, "status": DuesStatus.PENDING.value}, session=session
    ).update({"$set": fields}, session=session)
    return bool(result and result.modified_count)


async def settle_manual(body: ManualPaymentBody) -> DuesRecord:
    """Record a cash payment against an existing Pending dues record."""
    record = await DuesRecord.find_one(
        {"member_id": body.member_id, "month": body.month, "year": body.year}
    )
    if not record:
        raise NotFoundError(f"No dues record for {body.month} {body.year} for this member")
    if record.status == DuesStatus.PAID:
        raise ConflictError(f"A payment for {body.month} {body.year} has already been recorded.")

    fields = _paid_fields(SettlementMethod.CASH, body.payment_date, cash_receipt_id())
    fields["amount"] = round(body.amount, 2)
    if abs(record.amount - body.amount) > 0.005:
        logger.info(
            "Cash payment for dues %s of %.2f differs from billed %.2f",
            record.id,
            body.amount,
            record.amount,
        )
    if not await _mark_paid(record.id, fields):
        raise ConflictError(f"A payment for {body.month} {body.year} has already been recorded.")
    for key, value in fields.items():
        setattr(record, key, value)
    logger.info("Cash payment recorded for dues %s (%s %s)", record.id, record.month, record.year)
    return record


def _parse_ids(raw_ids: list[str]) -> tuple[list[PydanticObjectId], list[str]]:
    valid, invalid = [], []
    for raw in raw_ids:
        try:
            valid.append(PydanticObjectId(raw))
        except (InvalidId, TypeError, ValueError):
            invalid.append(raw)
    return valid, invalid


async def settle_online(settlement: OnlineSettlement) -> SettlementResult:
    """Mark every referenced Pending record Paid in one transaction.

    Unknown ids and records that are already Paid are logged and skipped so
    that a replayed or partially stale event still settles the rest. If any
    update inside the batch fails, the transaction aborts and nothing changes.
    """
    result = SettlementResult()
    object_ids, invalid = _parse_ids(settlement.dues_record_ids)
    result.missing.extend(invalid)

    records = await DuesRecord.find({"_id": {"$in": object_ids}}).to_list() if object_ids else []
    found = {str(r.id): r for r in records}
    to_settle: list[DuesRecord] = []
    for oid in object_ids:
        record = found.get(str(oid))
        if record is None:
            result.missing.append(str(oid))
        elif record.status == DuesStatus.PAID:
            result.already_paid.append(str(oid))
        else:
            to_settle.append(record)

    for rid in result.missing:
        logger.warning("Webhook %s references unknown dues record %s", settlement.gateway_payment_id, rid)
    for rid in result.already_paid:
        logger.info("Dues record %s already paid; skipping for %s", rid, settlement.gateway_payment_id)

    if not to_settle:
        return result

    billed = round(sum(r.amount for r in to_settle), 2)
    if abs(billed - settlement.amount) > 0.005:
        logger.warning(
            "Gateway payment %s of %.2f does not match %.2f billed on dues %s",
            settlement.gateway_payment_id,
            settlement.amount,
            billed,
            ",".join(str(r.id) for r in to_settle),
        )

    fields = _paid_fields(
        SettlementMethod.ONLINE,
        settlement.paid_at,
        receipt_id=settlement.gateway_payment_id,
        gateway_payment_id=settlement.gateway_payment_id,
    )
    async with transaction() as session:
        for record in to_settle:
            if await _mark_paid(record.id, fields, session=session):
                result.settled.append(str(record.id))
            else:
                # Settled by a concurrent delivery between the read and this write.
                result.already_paid.append(str(record.id))

    logger.info(
        "Gateway payment %s settled %d dues record(s): %s",
        settlement.gateway_payment_id,
        len(result.settled),
        ",".join(result.settled),
    )
    return result


async def backfill_dues(body: BackfillBody, billing_settings: Optional[BillingSettings]) -> DuesRecord:
    """Create a dues record for a missed period, Pending or already Paid in cash."""
    member = await Member.get(to_object_id(body.member_id, "Member"))
    if not member:
        raise NotFoundError("Member not found")
    if body.status != DuesStatus.PAID and body.payment_date is not None:
        raise InvalidInputError("payment_date is only allowed for Paid records")
    amount = body.amount if body.amount is not None else require_fee(billing_settings)

    existing = await DuesRecord.find_one(
        {"member_id": body.member_id, "month": body.month, "year": body.year}
    )
    if existing:
        raise ConflictError(f"A payment record for {body.month} {body.year} already exists for this member.")

    record = DuesRecord(
        member_id=body.member_id,
        member_name=member.full_name,
        month=body.month,
        year=body.year,
        amount=round(amount, 2),
        status=body.status,
    )
    if body.status == DuesStatus.PAID:
        record.method = SettlementMethod.CASH
        record.paid_at = body.payment_date or datetime.utcnow()
        record.receipt_id = cash_receipt_id()
    if not await insert_unique(record):
        raise ConflictError(f"A payment record for {body.month} {body.year} already exists for this member.")
    logger.info("Backfilled %s dues for %s %s %s", body.status.value, member.full_name, body.month, body.year)
    return record
