"""
Request Identity Dependencies

Authentication happens upstream; the gateway forwards the caller's user id in
a header (``X-User-ID`` unless configured otherwise). These dependencies turn
that header into a User row and enforce the admin role.
"""

import uuid

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from src.commerce.exceptions import AuthenticationRequired, PermissionDenied
from src.config import get_settings
from src.database.connection import get_db_dependency
from src.database.models import User, UserRole

logger = structlog.get_logger(__name__)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_dependency),
) -> User:
    header = get_settings().security.user_id_header
    raw_id = request.headers.get(header)
    if not raw_id:
        raise AuthenticationRequired("Not authenticated")

    try:
        user_id = uuid.UUID(raw_id)
    except ValueError:
        raise AuthenticationRequired("Not authenticated")

    user = await db.get(User, user_id)
    if user is None:
        logger.warning("Unknown user id in identity header", user_id=raw_id)
        raise AuthenticationRequired("Not authenticated")

    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Current user, who must hold the admin role."""
    if user.role != UserRole.ADMIN:
        logger.warning("Admin access denied", user_id=str(user.id))
        raise PermissionDenied("Admin access required")
    return user
