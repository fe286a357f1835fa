"""Online payment: hosted payment links for one or more pending dues records."""
import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from app.api.deps import CurrentUser, ensure_self_or_admin
from app.config import settings
from app.db import to_object_id
from app.errors import InvalidInputError, NotFoundError
from app.models.dues import DuesRecord, DuesStatus
from app.models.member import Member
from app.services.gateway import build_payment_link_request, get_gateway

logger = logging.getLogger(__name__)

router = APIRouter()


class OrderRequest(BaseModel):
    dues_record_ids: list[str] = Field(min_length=1)
    return_url: str = Field(min_length=1)


@router.post("/")
async def create_order(body: OrderRequest, user: CurrentUser):
    gateway = get_gateway(settings)
    records: list[DuesRecord] = []
    for raw_id in dict.fromkeys(body.dues_record_ids):
        record = await DuesRecord.get(to_object_id(raw_id, "Dues record"))
        if not record:
            raise NotFoundError(f"Payment with ID {raw_id} not found.")
        if record.status == DuesStatus.PAID:
            raise InvalidInputError(f"Payment for {record.month} {record.year} has already been completed.")
        records.append(record)

    member_ids = {r.member_id for r in records}
    if len(member_ids) != 1:
        raise InvalidInputError("All dues records in one payment must belong to the same member")
    member_id = member_ids.pop()
    ensure_self_or_admin(user, member_id)

    member = await Member.get(to_object_id(member_id, "Member"))
    if not member:
        raise NotFoundError("Member not found")

    request_body = build_payment_link_request(
        member_id=member_id,
        member_name=member.full_name,
        member_email=str(member.email),
        member_phone=member.phone,
        records=records,
        return_url=body.return_url,
        org_name=settings.org_name,
    )
    link = await gateway.create_payment_link(request_body)
    short_url = link.get("short_url")
    if not short_url:
        raise HTTPException(status_code=502, detail="Payment gateway returned no link")
    logger.info("Payment link %s created for %d dues record(s) of %s", link.get("id"), len(records), member_id)
    return {"short_url": short_url}
