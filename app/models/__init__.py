"""Beanie document models and Pydantic schemas."""
from app.models.member import Member, MemberRole, MemberCreate, MemberUpdate
from app.models.dues import (
    MONTHS,
    DuesRecord,
    DuesStatus,
    SettlementMethod,
    ManualPaymentBody,
    BackfillBody,
)
from app.models.expenditure import Expenditure, ExpenditureCreate
from app.models.settings import BillingSettings, BillingSettingsUpdate

__all__ = [
    "Member",
    "MemberRole",
    "MemberCreate",
    "MemberUpdate",
    "MONTHS",
    "DuesRecord",
    "DuesStatus",
    "SettlementMethod",
    "ManualPaymentBody",
    "BackfillBody",
    "Expenditure",
    "ExpenditureCreate",
    "BillingSettings",
    "BillingSettingsUpdate",
]
