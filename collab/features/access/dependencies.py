"""
Space access dependencies for route protection.

Implements:
- Override store injection
- View-as role preview for PlatformAdmins
- require_space_access route guard (invisible -> 404, below minimum -> 403)
"""
from dataclasses import dataclass
from typing import Annotated, Optional
from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from collab.core import config
from collab.core.database.engine import get_db
from collab.features.access.exceptions import OverrideLookupError
from collab.features.access.levels import AccessLevel, at_least
from collab.features.access.resolver import resolve_access
from collab.features.access.roles import PRIVILEGED_ROLE, PlatformRole, normalize_role
from collab.features.access.spaces import PlatformSpace, ScopeType
from collab.features.access.store import SqlOverrideStore
from collab.features.users.dependencies import get_current_user
from collab.features.users.models import User
from collab.utils import get_logger


log = get_logger(__name__)


async def get_override_store(
    db: Annotated[AsyncSession, Depends(get_db)]
) -> SqlOverrideStore:
    return SqlOverrideStore(db)


# ============================================================================
# View-as
# ============================================================================

def read_view_as_role(request: Request) -> Optional[PlatformRole]:
    """Previewed role from the view-as cookie, or None if absent or invalid."""
    value = request.cookies.get(config.VIEW_AS_COOKIE_NAME)
    if not value:
        return None
    try:
        role = PlatformRole(value)
    except ValueError:
        return None
    return None if role is PRIVILEGED_ROLE else role


def write_view_as_role(response: Response, role: Optional[PlatformRole]) -> Optional[PlatformRole]:
    """Set or clear the view-as cookie; previewing PlatformAdmin clears it."""
    if role is None or role is PRIVILEGED_ROLE:
        response.delete_cookie(config.VIEW_AS_COOKIE_NAME, path="/")
        return None
    response.set_cookie(
        config.VIEW_AS_COOKIE_NAME,
        role.value,
        max_age=config.VIEW_AS_MAX_AGE,
        path="/",
        samesite="lax",
        httponly=False,
    )
    return role


@dataclass
class EffectiveRole:
    """Role fed to the resolver, and the preview in effect if any."""
    role: PlatformRole
    viewing_as: Optional[PlatformRole] = None


async def get_effective_role(
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
) -> EffectiveRole:
    """
    The user's normalized role, replaced by the view-as preview when the user
    is a PlatformAdmin. The cookie is ignored for everyone else.
    """
    role = normalize_role(user.role)
    if role is PRIVILEGED_ROLE:
        preview = read_view_as_role(request)
        if preview is not None:
            return EffectiveRole(role=preview, viewing_as=preview)
    return EffectiveRole(role=role)


# ============================================================================
# Route guard
# ============================================================================

@dataclass
class AccessContext:
    """Outcome of a passed space check."""
    user: User
    role: PlatformRole
    space: PlatformSpace
    level: AccessLevel


def require_space_access(
    space: PlatformSpace,
    minimum: AccessLevel = AccessLevel.VIEW,
    scope_type: Optional[ScopeType] = None,
    scope_param: Optional[str] = None,
):
    """
    FastAPI dependency requiring at least `minimum` on `space`.
    
    Usage:
        @router.patch("/initiatives/{initiative_id}")
        async def update_initiative(
            access: AccessContext = Depends(require_space_access(
                PlatformSpace.INITIATIVES, AccessLevel.EDIT,
                scope_type=ScopeType.INITIATIVE, scope_param="initiative_id",
            ))
        ):
            ...
    
    Args:
        space: Space being entered
        minimum: Lowest level allowed through
        scope_type: Scope for scoped overrides, if the route is entity-specific
        scope_param: Path parameter carrying the scope id
    
    Raises:
        HTTPException: 404 if invisible, 403 if below minimum, 503 if the
            override store could not be read
    """
    async def space_access_dependency(
        request: Request,
        user: Annotated[User, Depends(get_current_user)],
        effective: Annotated[EffectiveRole, Depends(get_effective_role)],
        store: Annotated[SqlOverrideStore, Depends(get_override_store)],
    ) -> AccessContext:
        scope_id = request.path_params.get(scope_param) if scope_param else None
        try:
            level = await resolve_access(
                user.id, effective.role, space, store.lookup, scope_type, scope_id
            )
        except OverrideLookupError:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Permissions are temporarily unavailable",
            )
        
        if level is AccessLevel.INVISIBLE:
            log.debug("user=%s cannot see %s", user.id, space.value)
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
        
        if not at_least(level, minimum):
            log.debug("user=%s has %s on %s, needs %s", user.id, level.value, space.value, minimum.value)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permission: {minimum.value} on {space.value} required",
            )
        
        return AccessContext(user=user, role=effective.role, space=space, level=level)
    
    return space_access_dependency
