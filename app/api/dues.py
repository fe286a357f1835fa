"""Dues records: listing, cash settlement, backfill, deletion, receipts."""
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from app.api.deps import AdminOnly, CurrentBillingSettings, CurrentUser, ensure_self_or_admin
from app.config import settings
from app.db import to_object_id
from app.errors import InvalidInputError, NotFoundError
from app.models.dues import BackfillBody, DuesRecord, DuesStatus, ManualPaymentBody
from app.models.member import Member, MemberRole
from app.services.dues import period_sort_key
from app.services.payments import backfill_dues, settle_manual
from app.services.receipt import generate_receipt_pdf_bytes

router = APIRouter()


def dues_out(d: DuesRecord) -> dict:
    return {
        "id": str(d.id),
        "member_id": d.member_id,
        "member_name": d.member_name,
        "month": d.month,
        "year": d.year,
        "amount": d.amount,
        "status": d.status.value if isinstance(d.status, DuesStatus) else d.status,
        "paid_at": d.paid_at,
        "method": getattr(d.method, "value", d.method),
        "receipt_id": d.receipt_id,
        "gateway_payment_id": d.gateway_payment_id,
    }


def sort_newest_first(records: list[DuesRecord]) -> list[DuesRecord]:
    return sorted(records, key=lambda d: period_sort_key(d.month, d.year), reverse=True)


@router.get("/")
async def list_dues(
    user: CurrentUser,
    member_id: Optional[str] = None,
    status: Optional[DuesStatus] = None,
    year: Optional[int] = None,
):
    if user.role != MemberRole.ADMIN:
        member_id = member_id or str(user.id)
        ensure_self_or_admin(user, member_id)
    query = {}
    if member_id:
        query["member_id"] = member_id
    if status:
        query["status"] = status.value
    if year:
        query["year"] = year
    items = await DuesRecord.find(query).to_list()
    return [dues_out(d) for d in sort_newest_first(items)]


@router.post("/manual")
async def record_manual_payment(body: ManualPaymentBody, admin: AdminOnly):
    """Settle a Pending record in cash."""
    record = await settle_manual(body)
    return dues_out(record)


@router.post("/backfill", status_code=201)
async def backfill(body: BackfillBody, admin: AdminOnly, billing_settings: CurrentBillingSettings):
    """Create a record for a missed period (Pending, or Paid in cash)."""
    record = await backfill_dues(body, billing_settings)
    return dues_out(record)


@router.delete("/{dues_id}")
async def delete_dues(dues_id: str, admin: AdminOnly):
    record = await DuesRecord.get(to_object_id(dues_id, "Dues record"))
    if not record:
        raise NotFoundError("Dues record not found")
    await record.delete()
    return {"message": "Payment has been deleted successfully."}


@router.get("/{dues_id}/receipt")
async def download_receipt(dues_id: str, user: CurrentUser):
    """Generate an A5 receipt PDF for a Paid record."""
    record = await DuesRecord.get(to_object_id(dues_id, "Dues record"))
    if not record:
        raise NotFoundError("Dues record not found")
    ensure_self_or_admin(user, record.member_id)
    if record.status != DuesStatus.PAID:
        raise InvalidInputError("Receipt only for paid records")
    member = await Member.get(to_object_id(record.member_id, "Member"))
    pdf_bytes = await generate_receipt_pdf_bytes(
        record,
        member_name=member.full_name if member else record.member_name,
        member_email=str(member.email) if member else "",
        org_name=settings.org_name,
        org_address=settings.org_address,
    )
    if not pdf_bytes:
        raise HTTPException(status_code=503, detail="Receipt generation failed")
    filename = f"receipt-{record.month.lower()}-{record.year}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
