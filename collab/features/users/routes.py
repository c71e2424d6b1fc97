"""
User feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from collab.core.database.engine import get_db
from collab.features.users.models import User
from collab.features.users.schemas import UserResponse, UserPublic, UserUpdate
from collab.features.users.dependencies import get_current_user


router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)]
):
    """Get current authenticated user's profile."""
    return user


@router.patch("/me", response_model=UserResponse)
async def update_current_user_profile(
    update_data: UserUpdate,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update current user's profile. The role is not self-editable."""
    for key, value in update_data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(user, key, value)
    
    await db.commit()
    await db.refresh(user)
    return user


@router.get("/{user_id}", response_model=UserPublic)
async def get_user_by_id(
    user_id: str,
    _user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get public user profile by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    
    return user


@router.get("/", response_model=list[UserPublic])
async def list_users(
    _user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = 0,
    limit: int = 50
):
    """List all active users (public info only)."""
    result = await db.execute(
        select(User)
        .where(User.is_active.is_(True))
        .order_by(User.name)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()
