"""Billing settings (singleton document)."""
from datetime import datetime

from beanie import Document
from pydantic import BaseModel, Field


class BillingSettings(Document):
    """Single-doc settings holding the current monthly fee."""

    monthly_fee: float = 0.0
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "settings"
        use_state_management = True


class BillingSettingsUpdate(BaseModel):
    monthly_fee: float = Field(gt=0)
