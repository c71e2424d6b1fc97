"""
Pydantic schemas for space access.

Request and response models for access checks, overrides, and the admin views.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from collab.features.access.levels import AccessLevel
from collab.features.access.roles import PlatformRole
from collab.features.access.spaces import PlatformSpace, ScopeType


# ============================================================================
# Access Check Schemas
# ============================================================================

class SpaceAccessResponse(BaseModel):
    """Effective access of the caller on one space."""
    space: PlatformSpace
    access_level: AccessLevel
    role: PlatformRole
    scope_type: Optional[ScopeType] = None
    scope_id: Optional[str] = None


class AllSpacesAccessResponse(BaseModel):
    """Effective access on every space, in navigation order."""
    user_id: str
    role: PlatformRole
    viewing_as: Optional[PlatformRole] = None
    spaces: Dict[PlatformSpace, AccessLevel]


class RoleDefaultsResponse(BaseModel):
    """The static role x space matrix, PlatformAdmin included."""
    spaces: List[PlatformSpace]
    roles: Dict[PlatformRole, Dict[PlatformSpace, AccessLevel]]


# ============================================================================
# Override Schemas
# ============================================================================

class OverrideScope(BaseModel):
    """Scope fields shared by set and remove requests."""
    scope_type: ScopeType = Field(ScopeType.GLOBAL, description="global, initiative or congress")
    scope_id: Optional[str] = Field(None, max_length=64, description="Scoped entity id; empty for global")

    @model_validator(mode="after")
    def scope_id_matches_type(self):
        if self.scope_type is ScopeType.GLOBAL and self.scope_id:
            raise ValueError("scope_id must be empty for global overrides")
        if self.scope_type is not ScopeType.GLOBAL and not self.scope_id:
            raise ValueError(f"scope_id is required for {self.scope_type.value} overrides")
        if self.scope_type is ScopeType.GLOBAL:
            self.scope_id = None
        return self


class PermissionOverrideSet(OverrideScope):
    """Schema for setting an override."""
    target_user_id: str = Field(..., description="User receiving the override")
    space: PlatformSpace
    access_level: AccessLevel


class PermissionOverrideResponse(BaseModel):
    """Schema for a stored override."""
    id: str
    user_id: str
    space: PlatformSpace
    access_level: AccessLevel
    scope_type: ScopeType
    scope_id: Optional[str]
    granted_by_id: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ViewAsRequest(BaseModel):
    """Role to preview; null or PlatformAdmin clears the preview."""
    role: Optional[PlatformRole] = None


class ViewAsResponse(BaseModel):
    viewing_as: Optional[PlatformRole] = None


# ============================================================================
# Admin Overview Schemas
# ============================================================================

class ScopedOverridePreview(BaseModel):
    space: PlatformSpace
    access_level: AccessLevel
    scope_type: str
    scope_id: Optional[str]
    updated_at: Optional[datetime]


class AuditPreview(BaseModel):
    created_at: datetime
    summary: str


class AdminUserRow(BaseModel):
    """One user on the admin permissions page."""
    id: str
    name: Optional[str]
    email: Optional[str]
    role: Optional[str]
    platform_role: PlatformRole
    overrides: Dict[PlatformSpace, Optional[AccessLevel]]
    scoped_override_counts: Dict[PlatformSpace, int]
    recent_scoped_overrides: List[ScopedOverridePreview] = []
    recent_audit: List[AuditPreview] = []


class AdminPermissionsOverview(BaseModel):
    users: List[AdminUserRow]
    override_count: int


# ============================================================================
# Audit Log Schemas
# ============================================================================

class PermissionAuditResponse(BaseModel):
    """Schema for audit log response."""
    id: str
    target_user_id: str
    changed_by_id: Optional[str]
    change_type: str
    previous_value: Optional[Dict[str, Any]]
    new_value: Optional[Dict[str, Any]]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PermissionAuditListResponse(BaseModel):
    """Schema for paginated audit log list."""
    items: List[PermissionAuditResponse]
    total: int
    page: int
    page_size: int
    pages: int
