"""Committee members and administrators."""
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, EmailStr, Field


class MemberRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class Member(Document):
    """Member document: identity, credentials and enrollment date."""

    email: Indexed(EmailStr, unique=True)
    hashed_password: str
    role: MemberRole = MemberRole.MEMBER
    full_name: str
    phone: Optional[str] = None
    enrolled_at: Optional[datetime] = Field(default_factory=datetime.utcnow)  # None on legacy rows
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "members"
        use_state_management = True


class MemberCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    enrolled_at: Optional[datetime] = None


class MemberUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
