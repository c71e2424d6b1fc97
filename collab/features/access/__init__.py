"""
Space access feature module.

Resolves a user's effective access level on each platform space from their
role, the static role-default matrix, and administrator overrides.
"""
from collab.features.access.levels import AccessLevel, at_least, can_access, rank
from collab.features.access.roles import PlatformRole, normalize_role
from collab.features.access.spaces import PLATFORM_SPACES, PlatformSpace, ScopeType
from collab.features.access.matrix import ROLE_SPACE_DEFAULTS, resolve_access_from_role
from collab.features.access.resolver import OverrideRecord, resolve_access, resolve_all_spaces

__all__ = [
    "AccessLevel",
    "OverrideRecord",
    "PLATFORM_SPACES",
    "PlatformRole",
    "PlatformSpace",
    "ROLE_SPACE_DEFAULTS",
    "ScopeType",
    "at_least",
    "can_access",
    "normalize_role",
    "rank",
    "resolve_access",
    "resolve_access_from_role",
    "resolve_all_spaces",
]
