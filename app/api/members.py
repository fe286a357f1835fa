"""Member management and per-member dues views."""
import io
from datetime import datetime
from typing import Literal

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from app.api.deps import AdminOnly, CurrentBillingSettings, CurrentUser, ensure_self_or_admin
from app.api.dues import dues_out, sort_newest_first
from app.config import settings
from app.db import to_object_id
from app.errors import InvalidInputError, MissingEnrollmentDate, NotFoundError
from app.models.dues import DuesRecord
from app.models.member import Member, MemberCreate, MemberRole, MemberUpdate
from app.services.billing import display_fee
from app.services.dues import compute_member_dues
from app.services.members import create_member, delete_member
from app.services.reporting import member_rows, members_csv, members_xlsx

router = APIRouter()


def member_out(m: Member) -> dict:
    return {
        "id": str(m.id),
        "email": m.email,
        "role": m.role.value,
        "full_name": m.full_name,
        "phone": m.phone,
        "enrolled_at": m.enrolled_at,
        "is_active": m.is_active,
    }


async def _financial_rows(billing_settings):
    members = await Member.find({"role": MemberRole.MEMBER.value}).sort("full_name").to_list()
    records = await DuesRecord.find({}).to_list()
    fee = display_fee(billing_settings, settings.default_monthly_fee)
    return member_rows(members, records, fee, datetime.utcnow())


@router.get("/")
async def list_members(admin: AdminOnly, billing_settings: CurrentBillingSettings):
    rows = await _financial_rows(billing_settings)
    return [r.model_dump() for r in rows]


@router.get("/export")
async def export_members(
    admin: AdminOnly,
    billing_settings: CurrentBillingSettings,
    format: Literal["csv", "excel"] = "csv",
):
    """Download the member financial table."""
    rows = await _financial_rows(billing_settings)
    if format == "csv":
        return StreamingResponse(
            iter([members_csv(rows)]),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=committee_members.csv"},
        )
    return StreamingResponse(
        io.BytesIO(members_xlsx(rows)),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=committee_members.xlsx"},
    )


@router.get("/{member_id}")
async def get_member(member_id: str, user: CurrentUser, billing_settings: CurrentBillingSettings):
    ensure_self_or_admin(user, member_id)
    member = await Member.get(to_object_id(member_id, "Member"))
    if not member:
        raise NotFoundError("Member not found")
    records = await DuesRecord.find({"member_id": member_id}).to_list()
    fee = display_fee(billing_settings, settings.default_monthly_fee)
    out = {**member_out(member), "dues": [dues_out(d) for d in sort_newest_first(records)]}
    try:
        out["summary"] = compute_member_dues(
            member.enrolled_at, records, fee, datetime.utcnow(), member_id=member_id
        ).model_dump()
    except MissingEnrollmentDate as e:
        out["summary"] = None
        out["data_issue"] = e.message
    return out


@router.post("/", status_code=201)
async def add_member(data: MemberCreate, admin: AdminOnly, billing_settings: CurrentBillingSettings):
    member, record = await create_member(data, billing_settings)
    return {
        "message": "User created successfully and initial bill generated.",
        "id": str(member.id),
        "dues_record_id": str(record.id),
    }


@router.patch("/{member_id}")
async def update_member(member_id: str, data: MemberUpdate, admin: AdminOnly):
    member = await Member.get(to_object_id(member_id, "Member"))
    if not member:
        raise NotFoundError("Member not found")
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise InvalidInputError("Nothing to update")
    for key, value in changes.items():
        setattr(member, key, value)
    member.updated_at = datetime.utcnow()
    await member.save()
    return member_out(member)


@router.delete("/{member_id}")
async def remove_member(member_id: str, admin: AdminOnly):
    if str(admin.id) == member_id:
        raise InvalidInputError("Administrators cannot delete their own account")
    deleted = await delete_member(member_id)
    return {"message": "User and their payment history have been deleted.", "deleted_dues": deleted}
