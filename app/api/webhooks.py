"""Gateway webhooks. Signature is checked on the raw body before any parsing."""
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Header, HTTPException, Request

from app.config import settings
from app.errors import ConfigurationError
from app.services.gateway import parse_event, settlement_from_event, verify_signature
from app.services.payments import settle_online

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/payment")
async def payment_webhook(
    request: Request,
    x_razorpay_signature: Annotated[Optional[str], Header()] = None,
    x_signature: Annotated[Optional[str], Header()] = None,
):
    secret = settings.razorpay_webhook_secret
    if not secret:
        raise ConfigurationError("Webhook secret is not configured.")
    signature = x_razorpay_signature or x_signature
    if not signature:
        raise HTTPException(status_code=400, detail="Signature missing")

    raw_body = await request.body()
    if not verify_signature(raw_body, signature, secret):
        logger.warning("Webhook signature verification failed")
        raise HTTPException(status_code=403, detail="Invalid signature")

    # From here on, always acknowledge so the gateway stops retrying.
    try:
        event = parse_event(raw_body)
    except ValueError as e:
        logger.error("Malformed webhook payload: %s", e)
        return {"status": "ignored"}

    settlement = settlement_from_event(event)
    if settlement is None:
        logger.info("Webhook received for unhandled event: %s. Ignoring.", event.event)
        return {"status": "ignored"}

    result = await settle_online(settlement)
    return {
        "status": "ok",
        "settled": result.settled,
        "already_paid": result.already_paid,
        "missing": result.missing,
    }
