"""
Role x space default access matrix.

The static policy baseline. PlatformAdmin is not in the table: it resolves to
manage everywhere in code so the table can never under- or over-grant admin
access by omission. The matrix is validated when this module is imported and
exposed read-only; changing a default is a deployment.
"""
from types import MappingProxyType
from typing import Any, Dict, Mapping

from collab.features.access.levels import AccessLevel
from collab.features.access.roles import PRIVILEGED_ROLE, PlatformRole, normalize_role
from collab.features.access.spaces import PLATFORM_SPACES, PlatformSpace
from collab.utils import get_logger


log = get_logger(__name__)

_I = AccessLevel.INVISIBLE
_V = AccessLevel.VIEW
_E = AccessLevel.EDIT
_M = AccessLevel.MANAGE

S = PlatformSpace

_POLICY: Dict[PlatformRole, Dict[PlatformSpace, AccessLevel]] = {
    PlatformRole.PATIENT_ADVOCATE: {
        S.DASHBOARD: _V, S.INITIATIVES: _E, S.TASKS: _E, S.CONGRESS: _V,
        S.STORIES: _E, S.RESOURCES: _V, S.PARTNERS: _I, S.NETWORK: _V,
        S.BOARD: _I, S.BUREAU: _I, S.NOTIFICATIONS: _V, S.PROFILE: _E,
        S.ADMIN: _I,
    },
    PlatformRole.CLINICIAN: {
        S.DASHBOARD: _V, S.INITIATIVES: _E, S.TASKS: _E, S.CONGRESS: _V,
        S.STORIES: _V, S.RESOURCES: _V, S.PARTNERS: _I, S.NETWORK: _V,
        S.BOARD: _I, S.BUREAU: _I, S.NOTIFICATIONS: _V, S.PROFILE: _E,
        S.ADMIN: _I,
    },
    PlatformRole.RESEARCHER: {
        S.DASHBOARD: _V, S.INITIATIVES: _E, S.TASKS: _E, S.CONGRESS: _V,
        S.STORIES: _V, S.RESOURCES: _V, S.PARTNERS: _I, S.NETWORK: _V,
        S.BOARD: _I, S.BUREAU: _I, S.NOTIFICATIONS: _V, S.PROFILE: _E,
        S.ADMIN: _I,
    },
    PlatformRole.MODERATOR: {
        S.DASHBOARD: _V, S.INITIATIVES: _V, S.TASKS: _I, S.CONGRESS: _V,
        S.STORIES: _M, S.RESOURCES: _V, S.PARTNERS: _I, S.NETWORK: _V,
        S.BOARD: _I, S.BUREAU: _I, S.NOTIFICATIONS: _V, S.PROFILE: _E,
        S.ADMIN: _I,
    },
    PlatformRole.HUB_COORDINATOR: {
        S.DASHBOARD: _V, S.INITIATIVES: _M, S.TASKS: _M, S.CONGRESS: _V,
        S.STORIES: _M, S.RESOURCES: _M, S.PARTNERS: _M, S.NETWORK: _V,
        S.BOARD: _I, S.BUREAU: _M, S.NOTIFICATIONS: _V, S.PROFILE: _E,
        S.ADMIN: _I,
    },
    PlatformRole.INDUSTRY_PARTNER: {
        S.DASHBOARD: _V, S.INITIATIVES: _I, S.TASKS: _I, S.CONGRESS: _V,
        S.STORIES: _I, S.RESOURCES: _V, S.PARTNERS: _E, S.NETWORK: _V,
        S.BOARD: _I, S.BUREAU: _I, S.NOTIFICATIONS: _V, S.PROFILE: _E,
        S.ADMIN: _I,
    },
    PlatformRole.BOARD_MEMBER: {
        S.DASHBOARD: _V, S.INITIATIVES: _V, S.TASKS: _I, S.CONGRESS: _V,
        S.STORIES: _V, S.RESOURCES: _V, S.PARTNERS: _I, S.NETWORK: _V,
        S.BOARD: _M, S.BUREAU: _I, S.NOTIFICATIONS: _V, S.PROFILE: _E,
        S.ADMIN: _I,
    },
}


def build_matrix(
    policy: Mapping[PlatformRole, Mapping[PlatformSpace, AccessLevel]],
) -> Mapping[PlatformRole, Mapping[PlatformSpace, AccessLevel]]:
    """
    Validate a policy table and freeze it.

    Every non-privileged role must have a valid level for every space, and
    only the privileged role may reach anything above invisible on admin.

    Raises:
        RuntimeError: if the table is incomplete or grants admin access
    """
    problems = []
    for role in PlatformRole:
        if role is PRIVILEGED_ROLE:
            if role in policy:
                problems.append(f"{role.value} must not appear in the defaults table")
            continue
        row = policy.get(role)
        if row is None:
            problems.append(f"{role.value} has no defaults")
            continue
        for space in PLATFORM_SPACES:
            level = row.get(space)
            if not isinstance(level, AccessLevel):
                problems.append(f"{role.value}.{space.value} = {level!r} is not an AccessLevel")
        if row.get(PlatformSpace.ADMIN) not in (None, AccessLevel.INVISIBLE):
            problems.append(f"{role.value} must not have access to the admin space")
        extra = set(row) - set(PLATFORM_SPACES)
        if extra:
            problems.append(f"{role.value} has unknown spaces {sorted(map(str, extra))}")

    if problems:
        raise RuntimeError("Invalid role-space defaults: " + "; ".join(problems))

    return MappingProxyType({
        role: MappingProxyType({space: row[space] for space in PLATFORM_SPACES})
        for role, row in policy.items()
    })


ROLE_SPACE_DEFAULTS = build_matrix(_POLICY)


def resolve_access_from_role(role: Any, space: PlatformSpace) -> AccessLevel:
    """
    Default access for a raw role on a space, with no override lookup.

    Pure and synchronous; safe in route guards and navigation builders.
    """
    normalized = normalize_role(role)
    if normalized is PRIVILEGED_ROLE:
        return AccessLevel.MANAGE

    row = ROLE_SPACE_DEFAULTS.get(normalized)
    level = row.get(space) if row is not None else None
    if level is None:
        # Unreachable while build_matrix passes; fail closed
        log.error("No default for role=%s space=%s, denying", normalized.value, space)
        return AccessLevel.INVISIBLE
    return level


def role_defaults_matrix() -> Dict[PlatformRole, Dict[PlatformSpace, AccessLevel]]:
    """Full role x space table for display, PlatformAdmin included."""
    return {
        role: {space: resolve_access_from_role(role, space) for space in PLATFORM_SPACES}
        for role in PlatformRole
    }
