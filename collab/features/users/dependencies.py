"""
FastAPI dependencies for authentication.
"""
from typing import Annotated
from datetime import datetime, timezone
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from collab.core.database.engine import get_db
from collab.features.users.models import User
from collab.features.users.auth import verify_jwt_token
from collab.features.access.roles import is_privileged


security = HTTPBearer()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """
    Get the current authenticated user from the bearer token.
    
    This dependency:
    1. Extracts JWT from Authorization header
    2. Verifies it and reads the `sub` claim
    3. Loads the user profile from the local database
    4. Updates last_login_at timestamp
    
    Usage:
        @router.get("/me")
        async def get_me(user: User = Depends(get_current_user)):
            return user
    """
    payload = verify_jwt_token(credentials.credentials)
    user_id = payload.get("sub")
    
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    
    # Profiles are created by onboarding, never implicitly here
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
        )
    
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )
    
    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(user)
    return user


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"


async def get_current_admin_user(
    user: Annotated[User, Depends(get_current_user)]
) -> User:
    """
    Require the PlatformAdmin role.
    
    Checks the stored role, never a view-as preview, so an admin previewing
    another role keeps access to admin endpoints.
    """
    if not is_privileged(user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: PlatformAdmin only",
        )
    return user
