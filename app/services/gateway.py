"""Razorpay boundary: hosted payment links and webhook verification/parsing."""
import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Sequence, Union

import httpx
from pydantic import BaseModel, BeforeValidator, Field, TypeAdapter, field_validator

from app.config import Settings
from app.errors import ConfigurationError, GatewayError
from app.services.payments import OnlineSettlement

logger = logging.getLogger(__name__)

CURRENCY = "INR"


# --- Payment links ---------------------------------------------------------

def to_minor_units(amount: float) -> int:
    """Rupees -> paise."""
    return int(round(amount * 100))


def build_payment_link_request(
    *,
    member_id: str,
    member_name: str,
    member_email: str,
    member_phone: Optional[str],
    records: Sequence[Any],
    return_url: str,
    org_name: str,
) -> dict:
    """Payment-link body covering ``records``; their ids travel in the notes."""
    periods = [f"{r.month} {r.year}" for r in records]
    total = sum(r.amount for r in records)
    if len(records) > 1:
        description = f"Bundled payment for {org_name} for {', '.join(periods)}"
    else:
        description = f"Payment for {org_name} for {periods[0]}"
    customer = {"name": member_name, "email": member_email}
    if member_phone:
        customer["contact"] = member_phone
    return {
        "amount": to_minor_units(total),
        "currency": CURRENCY,
        "accept_partial": False,
        "description": description[:2048],
        "customer": customer,
        "notify": {"sms": True, "email": True},
        "reminder_enable": True,
        "notes": {
            "dues_record_ids": ",".join(str(r.id) for r in records),
            "member_id": member_id,
        },
        "callback_url": return_url,
        "callback_method": "get",
    }


class RazorpayClient:
    """Minimal async client for the payment-links API."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        api_base: str = "https://api.razorpay.com/v1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._auth = (key_id, key_secret)
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def create_payment_link(self, body: dict) -> dict:
        try:
            async with httpx.AsyncClient(
                base_url=self._api_base,
                auth=self._auth,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = await client.post("/payment_links", json=body)
        except httpx.HTTPError as e:
            logger.error("Razorpay request failed: %s", e)
            raise GatewayError(f"Failed to create payment link: {e}") from e
        if resp.status_code >= 400:
            raise GatewayError(f"Failed to create payment link: {_error_description(resp)}")
        return resp.json()


def _error_description(resp: httpx.Response) -> str:
    try:
        return resp.json()["error"]["description"]
    except (ValueError, KeyError, TypeError):
        return f"HTTP {resp.status_code}"


def get_gateway(settings: Settings) -> RazorpayClient:
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        raise ConfigurationError(
            "Payment processing is not configured on the server. Please contact an administrator."
        )
    return RazorpayClient(
        settings.razorpay_key_id,
        settings.razorpay_key_secret,
        api_base=settings.razorpay_api_base,
        timeout=settings.razorpay_timeout_seconds,
    )


# --- Webhooks --------------------------------------------------------------

def sign_payload(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature: str, secret: str) -> bool:
    """HMAC-SHA256 of the raw body, compared in constant time."""
    if not signature or not secret:
        return False
    return hmac.compare_digest(sign_payload(raw_body, secret), signature.strip())


class Notes(BaseModel):
    dues_record_ids: list[str] = Field(default_factory=list)
    member_id: Optional[str] = None

    @field_validator("dues_record_ids", mode="before")
    @classmethod
    def _split_ids(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v


def _coerce_notes(v):
    # Razorpay sends an empty JSON array when no notes were set.
    if isinstance(v, list):
        return {}
    return v


NotesField = Annotated[Notes, BeforeValidator(_coerce_notes)]


class PaymentEntity(BaseModel):
    id: str
    amount: int
    currency: str = CURRENCY
    status: Optional[str] = None
    notes: NotesField = Field(default_factory=Notes)
    created_at: Optional[int] = None


class PaymentLinkEntity(BaseModel):
    id: str
    status: Optional[str] = None
    notes: NotesField = Field(default_factory=Notes)


class PaymentWrapper(BaseModel):
    entity: PaymentEntity


class PaymentLinkWrapper(BaseModel):
    entity: PaymentLinkEntity


class PaymentLinkPaidPayload(BaseModel):
    payment_link: PaymentLinkWrapper
    payment: PaymentWrapper


class PaymentCapturedPayload(BaseModel):
    payment: PaymentWrapper


class PaymentLinkPaid(BaseModel):
    event: Literal["payment_link.paid"]
    created_at: Optional[int] = None
    payload: PaymentLinkPaidPayload


class PaymentCaptured(BaseModel):
    event: Literal["payment.captured"]
    created_at: Optional[int] = None
    payload: PaymentCapturedPayload


class IgnoredEvent(BaseModel):
    event: str = ""


HandledEvent = Annotated[Union[PaymentLinkPaid, PaymentCaptured], Field(discriminator="event")]
GatewayEvent = Union[PaymentLinkPaid, PaymentCaptured, IgnoredEvent]

_handled_adapter = TypeAdapter(HandledEvent)
HANDLED_EVENTS = ("payment_link.paid", "payment.captured")


def parse_event(raw_body: bytes) -> GatewayEvent:
    """Parse a verified webhook body. Unhandled event names become IgnoredEvent.

    Raises ValueError (including pydantic's ValidationError) on malformed JSON
    or a handled event missing required fields.
    """
    data = json.loads(raw_body)
    if not isinstance(data, dict):
        raise ValueError("Webhook body is not a JSON object")
    name = data.get("event")
    if name not in HANDLED_EVENTS:
        return IgnoredEvent(event=str(name or ""))
    return _handled_adapter.validate_python(data)


def _event_time(*candidates: Optional[int]) -> datetime:
    for ts in candidates:
        if ts:
            return datetime.fromtimestamp(ts, tz=timezone.utc).replace(tzinfo=None)
    return datetime.utcnow()


def settlement_from_event(event: GatewayEvent) -> Optional[OnlineSettlement]:
    """Settlement instruction for a handled event, or None when nothing to do."""
    if isinstance(event, PaymentLinkPaid):
        payment = event.payload.payment.entity
        ids = event.payload.payment_link.entity.notes.dues_record_ids or payment.notes.dues_record_ids
        paid_at = _event_time(event.created_at, payment.created_at)
    elif isinstance(event, PaymentCaptured):
        payment = event.payload.payment.entity
        ids = payment.notes.dues_record_ids
        paid_at = _event_time(event.created_at, payment.created_at)
    else:
        return None
    if not ids:
        logger.error("Webhook %s for payment %s carries no dues_record_ids", event.event, payment.id)
        return None
    return OnlineSettlement(
        dues_record_ids=ids,
        gateway_payment_id=payment.id,
        amount=payment.amount / 100,
        paid_at=paid_at,
    )
