"""
Admin permissions overview: every user with their overrides and recent changes.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from collab.features.access.levels import AccessLevel
from collab.features.access.models import PermissionAuditLog, UserSpacePermission
from collab.features.access.roles import normalize_role
from collab.features.access.schemas import (
    AdminPermissionsOverview,
    AdminUserRow,
    AuditPreview,
    ScopedOverridePreview,
)
from collab.features.access.spaces import PLATFORM_SPACES, PlatformSpace, ScopeType
from collab.features.users.models import User
from collab.utils import get_logger


log = get_logger(__name__)

MAX_SCOPED_PREVIEWS = 6
MAX_AUDIT_PREVIEWS = 5
AUDIT_SCAN_LIMIT = 200

_SPACE_VALUES = {space.value: space for space in PLATFORM_SPACES}


def summarize_audit_entry(change_type: str, new_value: Optional[Dict[str, Any]]) -> str:
    """
    One-line description of an override change.

        "initiatives: manage (initiative:init-42)"
        "stories: view (global)"
    """
    new_value = new_value or {}
    space = new_value.get("space") if isinstance(new_value.get("space"), str) else "unknown-space"
    level = new_value.get("access_level") if isinstance(new_value.get("access_level"), str) else change_type
    scope_type = new_value.get("scope_type") if isinstance(new_value.get("scope_type"), str) else ScopeType.GLOBAL.value
    scope_id = new_value.get("scope_id") if isinstance(new_value.get("scope_id"), str) else None

    if scope_type == ScopeType.GLOBAL.value:
        return f"{space}: {level} (global)"
    suffix = f":{scope_id}" if scope_id else ""
    return f"{space}: {level} ({scope_type}{suffix})"


def _known_override(row: UserSpacePermission) -> Optional[tuple[PlatformSpace, AccessLevel]]:
    space = _SPACE_VALUES.get(row.space)
    if space is None:
        return None
    try:
        return space, AccessLevel(row.access_level)
    except ValueError:
        return None


async def load_admin_permissions_overview(db: AsyncSession) -> AdminPermissionsOverview:
    """
    Build the admin permissions overview in four queries.

    Rows naming an unknown space or level are skipped and logged.
    """
    users = (await db.execute(select(User).order_by(User.name))).scalars().all()
    overrides = (await db.execute(
        select(UserSpacePermission).order_by(UserSpacePermission.created_at, UserSpacePermission.id)
    )).scalars().all()
    audit_rows = (await db.execute(
        select(PermissionAuditLog)
        .order_by(PermissionAuditLog.created_at.desc(), PermissionAuditLog.id.desc())
        .limit(AUDIT_SCAN_LIMIT)
    )).scalars().all()

    global_by_user: Dict[str, Dict[PlatformSpace, AccessLevel]] = {}
    scoped_by_user: Dict[str, List[tuple[Any, ScopedOverridePreview]]] = {}
    scoped_counts: Dict[str, Dict[PlatformSpace, int]] = {}

    for row in overrides:
        known = _known_override(row)
        if known is None:
            log.warning("Skipping override %s with unknown space/level", row.id)
            continue
        space, level = known
        if row.scope_type == ScopeType.GLOBAL.value:
            global_by_user.setdefault(row.user_id, {}).setdefault(space, level)
            continue

        preview = ScopedOverridePreview(
            space=space,
            access_level=level,
            scope_type=row.scope_type,
            scope_id=row.scope_id,
            updated_at=row.updated_at,
        )
        scoped_by_user.setdefault(row.user_id, []).append((row.updated_at, preview))
        counts = scoped_counts.setdefault(row.user_id, {s: 0 for s in PLATFORM_SPACES})
        counts[space] += 1

    audit_by_user: Dict[str, List[AuditPreview]] = {}
    for entry in audit_rows:
        previews = audit_by_user.setdefault(entry.target_user_id, [])
        if len(previews) < MAX_AUDIT_PREVIEWS:
            previews.append(AuditPreview(
                created_at=entry.created_at,
                summary=summarize_audit_entry(entry.change_type, entry.new_value),
            ))

    rows = []
    for user in users:
        user_globals = global_by_user.get(user.id, {})
        scoped = sorted(
            scoped_by_user.get(user.id, []),
            key=lambda item: item[0].isoformat() if item[0] else "",
            reverse=True,
        )
        rows.append(AdminUserRow(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            platform_role=normalize_role(user.role),
            overrides={space: user_globals.get(space) for space in PLATFORM_SPACES},
            scoped_override_counts=scoped_counts.get(user.id, {s: 0 for s in PLATFORM_SPACES}),
            recent_scoped_overrides=[preview for _, preview in scoped[:MAX_SCOPED_PREVIEWS]],
            recent_audit=audit_by_user.get(user.id, []),
        ))

    override_count = sum(
        1 for row in rows for level in row.overrides.values() if level is not None
    )
    return AdminPermissionsOverview(users=rows, override_count=override_count)
