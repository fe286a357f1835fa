"""Seed the administrator account if configured and not present."""
import logging

from app.api.deps import get_password_hash
from app.config import settings
from app.models.member import Member, MemberRole

logger = logging.getLogger(__name__)


async def seed_admin():
    if not settings.admin_password:
        return
    existing = await Member.find_one({"email": settings.admin_email})
    if existing:
        return
    await Member(
        email=settings.admin_email,
        hashed_password=get_password_hash(settings.admin_password),
        role=MemberRole.ADMIN,
        full_name=settings.admin_full_name,
        enrolled_at=None,
    ).insert()
    logger.info("Seeded admin account %s", settings.admin_email)
