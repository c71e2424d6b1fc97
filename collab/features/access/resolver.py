"""
Override-aware access resolution.

Precedence, highest first:
1. PlatformAdmin -> manage (the override store is never consulted)
2. Scoped override matching the requested (scope_type, scope_id) exactly
3. Global override for (user, space)
4. Role default from the matrix

Overrides are a sparse exception list layered over the matrix. The first
matching record in lookup order wins a tier; levels are never combined.
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Sequence

from collab.features.access.exceptions import OverrideLookupError, OverrideScopeError
from collab.features.access.levels import AccessLevel
from collab.features.access.matrix import resolve_access_from_role
from collab.features.access.roles import PRIVILEGED_ROLE, normalize_role
from collab.features.access.spaces import PLATFORM_SPACES, PlatformSpace, ScopeType
from collab.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class OverrideRecord:
    """An administrator-set exception to a role default."""
    user_id: str
    space: PlatformSpace
    access_level: AccessLevel
    scope_type: ScopeType = ScopeType.GLOBAL
    scope_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "space", PlatformSpace(self.space))
        object.__setattr__(self, "access_level", AccessLevel(self.access_level))
        object.__setattr__(self, "scope_type", ScopeType(self.scope_type))
        validate_scope(self.scope_type, self.scope_id)

    @property
    def is_global(self) -> bool:
        return self.scope_type is ScopeType.GLOBAL

    def matches_scope(self, scope_type: ScopeType, scope_id: str) -> bool:
        return self.scope_type is scope_type and self.scope_id == scope_id


def validate_scope(scope_type: ScopeType, scope_id: Optional[str]) -> None:
    """
    Raises:
        OverrideScopeError: global with a scope id, or scoped without one
    """
    if ScopeType(scope_type) is ScopeType.GLOBAL:
        if scope_id is not None:
            raise OverrideScopeError("scope_id must be empty for global overrides")
    elif not scope_id:
        raise OverrideScopeError(f"scope_id is required for {ScopeType(scope_type).value} overrides")


# (user_id, space, scope_type, scope_id) -> global records plus records of scope_type
OverrideLookup = Callable[
    [str, PlatformSpace, Optional[ScopeType], Optional[str]],
    Awaitable[Sequence[OverrideRecord]],
]

# user_id -> every global record for the user
OverrideLookupAll = Callable[[str], Awaitable[Sequence[OverrideRecord]]]


def applied_scope(
    scope_type: Optional[ScopeType], scope_id: Optional[str]
) -> tuple[Optional[ScopeType], Optional[str]]:
    """The (scope_type, scope_id) resolve_access honors, or (None, None) if unscoped."""
    if scope_type is None or not scope_id:
        return None, None
    scope_type = ScopeType(scope_type)
    if scope_type is ScopeType.GLOBAL:
        return None, None
    return scope_type, scope_id


def _first(records: Iterable[OverrideRecord], predicate) -> Optional[OverrideRecord]:
    for record in records:
        if predicate(record):
            return record
    return None


async def resolve_access(
    user_id: str,
    role: Any,
    space: PlatformSpace,
    lookup: OverrideLookup,
    scope_type: Optional[ScopeType] = None,
    scope_id: Optional[str] = None,
) -> AccessLevel:
    """
    Effective access level of a user on one space.

    Args:
        user_id: User whose overrides apply
        role: Raw role value from the user's profile
        space: Space being checked
        lookup: Override store capability
        scope_type: Optional initiative / congress scope
        scope_id: Id of the scoped entity; ignored without scope_type

    Raises:
        OverrideLookupError: the store could not be read
    """
    normalized = normalize_role(role)
    if normalized is PRIVILEGED_ROLE:
        return AccessLevel.MANAGE

    try:
        space = PlatformSpace(space)
    except ValueError:
        log.error("Unknown space %r for user=%s, denying", space, user_id)
        return AccessLevel.INVISIBLE

    wanted_type, wanted_id = applied_scope(scope_type, scope_id)

    try:
        records = await lookup(user_id, space, wanted_type, wanted_id)
    except OverrideLookupError:
        log.exception("Override lookup failed for user=%s space=%s", user_id, space.value)
        raise
    except Exception as e:
        log.exception("Override lookup failed for user=%s space=%s", user_id, space.value)
        raise OverrideLookupError(user_id, str(e)) from e

    records = [r for r in records if r.user_id == user_id and r.space is space]

    if wanted_type is not None:
        scoped = _first(records, lambda r: r.matches_scope(wanted_type, wanted_id))
        if scoped is not None:
            log.debug(
                "user=%s space=%s -> %s (override %s:%s)",
                user_id, space.value, scoped.access_level.value, wanted_type.value, wanted_id,
            )
            return scoped.access_level

    global_override = _first(records, lambda r: r.is_global)
    if global_override is not None:
        log.debug(
            "user=%s space=%s -> %s (global override)",
            user_id, space.value, global_override.access_level.value,
        )
        return global_override.access_level

    level = resolve_access_from_role(normalized, space)
    log.debug("user=%s space=%s -> %s (no overrides, %s default)", user_id, space.value, level.value, normalized.value)
    return level


async def resolve_all_spaces(
    user_id: str,
    role: Any,
    lookup_all: OverrideLookupAll,
) -> Dict[PlatformSpace, AccessLevel]:
    """
    Effective access on every space in one store round-trip, for navigation.

    Only global overrides participate. The result always has one entry per
    space in PLATFORM_SPACES order.

    Raises:
        OverrideLookupError: the store could not be read
    """
    normalized = normalize_role(role)
    if normalized is PRIVILEGED_ROLE:
        return {space: AccessLevel.MANAGE for space in PLATFORM_SPACES}

    try:
        records = await lookup_all(user_id)
    except OverrideLookupError:
        log.exception("Bulk override lookup failed for user=%s", user_id)
        raise
    except Exception as e:
        log.exception("Bulk override lookup failed for user=%s", user_id)
        raise OverrideLookupError(user_id, str(e)) from e

    overrides: Dict[PlatformSpace, AccessLevel] = {}
    for record in records:
        if record.user_id != user_id or not record.is_global:
            continue
        overrides.setdefault(record.space, record.access_level)

    if not overrides:
        log.debug("user=%s has no global overrides", user_id)

    return {
        space: overrides[space] if space in overrides else resolve_access_from_role(normalized, space)
        for space in PLATFORM_SPACES
    }
