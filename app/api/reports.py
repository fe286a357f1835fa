"""Admin dashboard figures."""
from datetime import datetime

from fastapi import APIRouter

from app.api.deps import AdminOnly, CurrentBillingSettings
from app.config import settings
from app.models.dues import DuesRecord
from app.models.expenditure import Expenditure
from app.models.member import Member, MemberRole
from app.services.billing import display_fee
from app.services.reporting import summarize

router = APIRouter()


@router.get("/summary")
async def get_summary(admin: AdminOnly, billing_settings: CurrentBillingSettings):
    """Collected vs pending vs spent, recomputed on every call."""
    members = await Member.find({"role": MemberRole.MEMBER.value}).to_list()
    records = await DuesRecord.find({}).to_list()
    expenditures = await Expenditure.find({}).to_list()
    fee = display_fee(billing_settings, settings.default_monthly_fee)
    return summarize(members, records, expenditures, fee, datetime.utcnow()).model_dump()
