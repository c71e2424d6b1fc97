"""
Platform spaces and override scopes.
"""
from enum import Enum


class PlatformSpace(str, Enum):
    """Functional areas of the platform with independently controlled access."""
    DASHBOARD = "dashboard"
    INITIATIVES = "initiatives"
    TASKS = "tasks"
    CONGRESS = "congress"
    STORIES = "stories"
    RESOURCES = "resources"
    PARTNERS = "partners"
    NETWORK = "network"
    BOARD = "board"
    BUREAU = "bureau"
    NOTIFICATIONS = "notifications"
    PROFILE = "profile"
    ADMIN = "admin"


# Navigation order
PLATFORM_SPACES: tuple[PlatformSpace, ...] = tuple(PlatformSpace)


class ScopeType(str, Enum):
    """Applicability of an override: everywhere, or one initiative / congress."""
    GLOBAL = "global"
    INITIATIVE = "initiative"
    CONGRESS = "congress"
