"""
Users

Registration and profile maintenance. Credentials live with the upstream
identity provider; this service only keeps the profile.
"""

import re
import uuid
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce.exceptions import NotFoundError, ValidationFailure
from src.database.models import User, UserRole

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PROFILE_FIELDS = ("first_name", "last_name", "avatar")


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationFailure(f"{email} is not a valid email address")
    return email


async def register_user(
    db: AsyncSession,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    role: UserRole = UserRole.USER,
) -> User:
    email = _normalize_email(email)
    existing = await db.execute(select(User.id).where(func.lower(User.email) == email))
    if existing.first() is not None:
        raise ValidationFailure("User already exists")

    user = User(email=email, first_name=first_name, last_name=last_name, role=role)
    display = " ".join(part for part in (first_name, last_name) if part)
    if display:
        user.avatar = f"https://ui-avatars.com/api/?name={display.replace(' ', '+')}&background=random&color=fff"
    db.add(user)
    await db.flush()

    logger.info("User registered", user_id=str(user.id), role=role.value)
    return user


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user", user_id)
    return user


async def update_profile(db: AsyncSession, user: User, fields: Dict[str, Any]) -> User:
    changes = {k: v for k, v in fields.items() if k in PROFILE_FIELDS}
    for name, value in changes.items():
        setattr(user, name, value)
    await db.flush()
    logger.info("Profile updated", user_id=str(user.id), fields=sorted(changes))
    return user


async def list_users(db: AsyncSession, role: Optional[UserRole] = None) -> List[User]:
    """Users newest first, optionally limited to one role."""
    query = select(User).order_by(User.created_at.desc())
    if role is not None:
        query = query.where(User.role == role)
    result = await db.execute(query)
    return list(result.scalars().all())
