"""
Access level lattice.

    invisible < view < edit < manage

Comparison is by rank only; the string values exist for storage and JSON.
"""
from enum import Enum


class AccessLevel(str, Enum):
    """Ordered permission tiers for a platform space."""
    INVISIBLE = "invisible"
    VIEW = "view"
    EDIT = "edit"
    MANAGE = "manage"


_ORDER = (AccessLevel.INVISIBLE, AccessLevel.VIEW, AccessLevel.EDIT, AccessLevel.MANAGE)
_RANKS = {level: index for index, level in enumerate(_ORDER)}


def rank(level: AccessLevel) -> int:
    """Ordinal of a level, 0 (invisible) through 3 (manage)."""
    return _RANKS[AccessLevel(level)]


def at_least(level: AccessLevel, minimum: AccessLevel) -> bool:
    """
    True if `level` is at least as permissive as `minimum`.

        at_least(AccessLevel.EDIT, AccessLevel.VIEW) -> True
        at_least(AccessLevel.VIEW, AccessLevel.EDIT) -> False
    """
    return rank(level) >= rank(minimum)


# Name used by UI gating call sites
can_access = at_least
