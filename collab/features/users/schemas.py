"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, computed_field

from collab.features.access.roles import PlatformRole, normalize_role


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)


class UserUpdate(BaseModel):
    """Schema for updating user information."""
    name: str | None = Field(None, min_length=1, max_length=255)
    avatar_url: str | None = Field(None, max_length=500)
    bio: str | None = Field(None, max_length=1000)


class UserResponse(UserBase):
    """Schema for user responses."""
    id: str
    role: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    
    @computed_field
    @property
    def platform_role(self) -> PlatformRole:
        return normalize_role(self.role)
    
    model_config = {"from_attributes": True}


class UserPublic(BaseModel):
    """Public user information (limited fields)."""
    id: str
    name: str
    avatar_url: str | None = None
    bio: str | None = None
    
    model_config = {"from_attributes": True}
