"""Billing settings: the monthly fee."""
from datetime import datetime

from fastapi import APIRouter

from app.api.deps import AdminOnly, CurrentBillingSettings, CurrentUser
from app.config import settings as app_settings
from app.models.settings import BillingSettings, BillingSettingsUpdate
from app.services.billing import display_fee

router = APIRouter()


@router.get("/billing")
async def get_billing_settings(user: CurrentUser, billing_settings: CurrentBillingSettings):
    configured = billing_settings is not None and billing_settings.monthly_fee > 0
    return {
        "monthly_fee": display_fee(billing_settings, app_settings.default_monthly_fee),
        "configured": configured,
    }


@router.put("/billing")
async def update_billing_settings(
    data: BillingSettingsUpdate,
    admin: AdminOnly,
    billing_settings: CurrentBillingSettings,
):
    if not billing_settings:
        billing_settings = BillingSettings(monthly_fee=round(data.monthly_fee, 2))
        await billing_settings.insert()
    else:
        billing_settings.monthly_fee = round(data.monthly_fee, 2)
        billing_settings.updated_at = datetime.utcnow()
        await billing_settings.save()
    return {"monthly_fee": billing_settings.monthly_fee, "configured": True}
