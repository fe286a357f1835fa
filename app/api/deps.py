"""Shared dependencies: JWT auth, role checks and billing settings."""
from datetime import datetime, timedelta
from typing import Annotated, Optional

import bcrypt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from app.config import settings
from app.models.member import Member, MemberRole
from app.models.settings import BillingSettings
from app.services.billing import get_billing_settings
from beanie import PydanticObjectId

security = HTTPBearer(auto_error=False)


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def create_access_token(subject: str, role: str) -> str:
    expire = datetime.utcnow() + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode = {"sub": subject, "role": role, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(subject: str) -> str:
    expire = datetime.utcnow() + timedelta(days=settings.jwt_refresh_token_expire_days)
    to_encode = {"sub": subject, "exp": expire, "type": "refresh"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Member:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = credentials.credentials
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        user_id: str = payload.get("sub")
        if not user_id or payload.get("type") != "access":
            raise HTTPException(status_code=401, detail="Invalid token")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if not PydanticObjectId.is_valid(user_id):
        raise HTTPException(status_code=401, detail="Invalid token")
    user = await Member.get(PydanticObjectId(user_id))
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


def require_roles(*allowed: MemberRole):
    allowed_values = [role.value for role in allowed]

    async def checker(user: Annotated[Member, Depends(get_current_user)]):
        if user.role not in allowed_values:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return checker


def ensure_self_or_admin(user: Member, member_id: str) -> None:
    if user.role != MemberRole.ADMIN and str(user.id) != member_id:
        raise HTTPException(status_code=403, detail="Not authorized")


async def get_current_user_or_cron(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    x_cron_secret: Annotated[Optional[str], Header()] = None,
) -> Optional[Member]:
    """Admin JWT, or the shared cron secret for scheduled triggers (returns None)."""
    if settings.cron_secret and x_cron_secret == settings.cron_secret:
        return None
    user = await get_current_user(credentials)
    if user.role != MemberRole.ADMIN:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return user


# Type aliases for route injection
CurrentUser = Annotated[Member, Depends(get_current_user)]
AdminOnly = Annotated[Member, Depends(require_roles(MemberRole.ADMIN))]
AdminOrCron = Annotated[Optional[Member], Depends(get_current_user_or_cron)]
CurrentBillingSettings = Annotated[Optional[BillingSettings], Depends(get_billing_settings)]
