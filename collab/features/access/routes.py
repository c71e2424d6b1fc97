"""
Space access API routes.

Provides the caller's effective access for navigation and route checks, plus
admin endpoints for overrides, the role-default matrix, and the audit log.
"""
import math
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from collab.core.database.engine import get_db
from collab.features.access.dependencies import (
    EffectiveRole,
    get_effective_role,
    get_override_store,
    write_view_as_role,
)
from collab.features.access.exceptions import OverrideLookupError, OverrideScopeError
from collab.features.access.matrix import role_defaults_matrix
from collab.features.access.overview import load_admin_permissions_overview
from collab.features.access.resolver import applied_scope, resolve_access, resolve_all_spaces
from collab.features.access.schemas import (
    AdminPermissionsOverview,
    AllSpacesAccessResponse,
    OverrideScope,
    PermissionAuditListResponse,
    PermissionAuditResponse,
    PermissionOverrideResponse,
    PermissionOverrideSet,
    RoleDefaultsResponse,
    SpaceAccessResponse,
    ViewAsRequest,
    ViewAsResponse,
)
from collab.features.access.spaces import PLATFORM_SPACES, PlatformSpace, ScopeType
from collab.features.access.store import SqlOverrideStore
from collab.features.users.dependencies import get_current_admin_user, get_current_user
from collab.features.users.models import User
from collab.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


def _lookup_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Permissions are temporarily unavailable",
    )


# ============================================================================
# Caller Access Routes
# ============================================================================

@router.get("/spaces", response_model=AllSpacesAccessResponse)
async def get_my_spaces(
    user: Annotated[User, Depends(get_current_user)],
    effective: Annotated[EffectiveRole, Depends(get_effective_role)],
    store: Annotated[SqlOverrideStore, Depends(get_override_store)],
):
    """Effective access on every space, for building navigation."""
    try:
        spaces = await resolve_all_spaces(user.id, effective.role, store.lookup_all_global)
    except OverrideLookupError:
        raise _lookup_unavailable()
    
    return AllSpacesAccessResponse(
        user_id=user.id,
        role=effective.role,
        viewing_as=effective.viewing_as,
        spaces=spaces,
    )


@router.get("/spaces/{space}", response_model=SpaceAccessResponse)
async def get_my_space_access(
    space: PlatformSpace,
    user: Annotated[User, Depends(get_current_user)],
    effective: Annotated[EffectiveRole, Depends(get_effective_role)],
    store: Annotated[SqlOverrideStore, Depends(get_override_store)],
    scope_type: Optional[ScopeType] = None,
    scope_id: Optional[str] = None,
):
    """Effective access on one space, optionally within an initiative or congress."""
    applied_type, applied_id = applied_scope(scope_type, scope_id)
    try:
        level = await resolve_access(user.id, effective.role, space, store.lookup, applied_type, applied_id)
    except OverrideLookupError:
        raise _lookup_unavailable()
    
    return SpaceAccessResponse(
        space=space,
        access_level=level,
        role=effective.role,
        scope_type=applied_type,
        scope_id=applied_id,
    )


@router.put("/view-as", response_model=ViewAsResponse)
async def set_view_as(
    body: ViewAsRequest,
    response: Response,
    admin: Annotated[User, Depends(get_current_admin_user)],
):
    """Preview the platform as another role (PlatformAdmin only)."""
    viewing_as = write_view_as_role(response, body.role)
    log.info("Admin %s view-as set to %s", admin.id, viewing_as.value if viewing_as else None)
    return ViewAsResponse(viewing_as=viewing_as)


# ============================================================================
# Admin Routes
# ============================================================================

@router.get("/role-defaults", response_model=RoleDefaultsResponse)
async def get_role_defaults(
    admin: Annotated[User, Depends(get_current_admin_user)],
):
    """The static role x space default matrix (admin only)."""
    return RoleDefaultsResponse(spaces=list(PLATFORM_SPACES), roles=role_defaults_matrix())


@router.get("/admin/users", response_model=AdminPermissionsOverview)
async def get_admin_permissions_overview(
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """All users with their overrides and recent changes (admin only)."""
    return await load_admin_permissions_overview(db)


@router.put("/admin/overrides", response_model=PermissionOverrideResponse)
async def set_permission_override(
    body: PermissionOverrideSet,
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[SqlOverrideStore, Depends(get_override_store)],
):
    """Create or update an override for a user (admin only)."""
    target = await db.get(User, body.target_user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    
    try:
        return await store.set_override(
            target_user_id=body.target_user_id,
            space=body.space,
            access_level=body.access_level,
            changed_by_id=admin.id,
            scope_type=body.scope_type,
            scope_id=body.scope_id,
        )
    except OverrideScopeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/admin/overrides", status_code=status.HTTP_204_NO_CONTENT)
async def remove_permission_override(
    admin: Annotated[User, Depends(get_current_admin_user)],
    store: Annotated[SqlOverrideStore, Depends(get_override_store)],
    target_user_id: str,
    space: PlatformSpace,
    scope_type: ScopeType = ScopeType.GLOBAL,
    scope_id: Optional[str] = None,
):
    """Remove an override, restoring the role default (admin only)."""
    try:
        scope = OverrideScope(scope_type=scope_type, scope_id=scope_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    
    await store.remove_override(
        target_user_id=target_user_id,
        space=space,
        changed_by_id=admin.id,
        scope_type=scope.scope_type,
        scope_id=scope.scope_id,
    )
    return None


@router.get("/admin/audit", response_model=PermissionAuditListResponse)
async def list_permission_audit(
    admin: Annotated[User, Depends(get_current_admin_user)],
    store: Annotated[SqlOverrideStore, Depends(get_override_store)],
    target_user_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """Override change history, newest first (admin only)."""
    items, total = await store.list_audit(target_user_id, page, page_size)
    return PermissionAuditListResponse(
        items=[PermissionAuditResponse.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total else 0,
    )
