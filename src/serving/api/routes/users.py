"""
Users API Endpoints
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce import users
from src.database.connection import get_db_dependency
from src.database.models import User, UserRole
from src.serving.api.dependencies import get_current_user, require_admin
from src.serving.cache import stats_cache

router = APIRouter()


class UserRegister(BaseModel):
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None


class UserResponse(BaseModel):
    """User profile"""
    id: UUID
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    role: UserRole
    avatar: Optional[str]
    address_summary: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserRegister, db: AsyncSession = Depends(get_db_dependency)):
    """Create a shopper profile for an identity issued upstream."""
    user = await users.register_user(db, payload.email, payload.first_name, payload.last_name)
    await stats_cache.invalidate_after_commit(db)
    return user


@router.get("/me", response_model=UserResponse)
async def read_profile(user: User = Depends(get_current_user)):
    return user


@router.put("/me", response_model=UserResponse)
async def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_dependency),
):
    return await users.update_profile(db, user, payload.model_dump(exclude_unset=True))


@router.get("", response_model=List[UserResponse], dependencies=[Depends(require_admin)])
async def list_users(
    role: Optional[UserRole] = None,
    db: AsyncSession = Depends(get_db_dependency),
):
    return await users.list_users(db, role=role)


@router.get("/{user_id}", response_model=UserResponse, dependencies=[Depends(require_admin)])
async def get_user(user_id: UUID, db: AsyncSession = Depends(get_db_dependency)):
    return await users.get_user(db, user_id)
