"""Monthly bill generation trigger (admin or scheduled job)."""
from fastapi import APIRouter

from app.api.deps import AdminOrCron, CurrentBillingSettings
from app.services.billing import generate_monthly_bills

router = APIRouter()


@router.get("/run")
async def run_billing(caller: AdminOrCron, billing_settings: CurrentBillingSettings):
    """Idempotent: members already billed for the current period are skipped."""
    result = await generate_monthly_bills(billing_settings)
    return {
        "ok": True,
        "message": f"Monthly bills generation complete. {result.created} new bills created.",
        **result.model_dump(),
    }
