"""
Platform role registry.

Role values arrive as untrusted strings from the profiles table. normalize_role
is the only place they are converted into a PlatformRole; nothing past it
handles raw role strings.
"""
from enum import Enum
from typing import Any, Dict


class PlatformRole(str, Enum):
    """Platform-wide user categories driving default space access."""
    PATIENT_ADVOCATE = "PatientAdvocate"
    CLINICIAN = "Clinician"
    RESEARCHER = "Researcher"
    MODERATOR = "Moderator"
    HUB_COORDINATOR = "HubCoordinator"
    INDUSTRY_PARTNER = "IndustryPartner"
    BOARD_MEMBER = "BoardMember"
    PLATFORM_ADMIN = "PlatformAdmin"


DEFAULT_ROLE = PlatformRole.PATIENT_ADVOCATE

# Resolves to manage on every space; never looked up in the matrix or overrides
PRIVILEGED_ROLE = PlatformRole.PLATFORM_ADMIN

_KNOWN_ROLES: Dict[str, PlatformRole] = {role.value: role for role in PlatformRole}

# Historical / alternate spellings found in older profile rows (lower-cased, trimmed)
LEGACY_ROLE_ALIASES: Dict[str, PlatformRole] = {
    "patient": PlatformRole.PATIENT_ADVOCATE,
    "advocate": PlatformRole.PATIENT_ADVOCATE,
    "patient_advocate": PlatformRole.PATIENT_ADVOCATE,
    "patientuser": PlatformRole.PATIENT_ADVOCATE,
    "patient user": PlatformRole.PATIENT_ADVOCATE,
    "hub_coordinator": PlatformRole.HUB_COORDINATOR,
    "industry_partner": PlatformRole.INDUSTRY_PARTNER,
    "board_member": PlatformRole.BOARD_MEMBER,
    "admin": PlatformRole.PLATFORM_ADMIN,
    "platform_admin": PlatformRole.PLATFORM_ADMIN,
    "platform admin": PlatformRole.PLATFORM_ADMIN,
}


def normalize_role(role: Any = None) -> PlatformRole:
    """
    Map a raw role value onto a PlatformRole.

    1. Empty or missing -> DEFAULT_ROLE
    2. Exact canonical identifier -> that role
    3. Lower-cased, trimmed legacy alias -> its canonical role
    4. Anything else -> DEFAULT_ROLE

    Never raises and never returns a value outside PlatformRole.
    """
    if isinstance(role, PlatformRole):
        return role
    if not role or not isinstance(role, str):
        return DEFAULT_ROLE

    known = _KNOWN_ROLES.get(role)
    if known is not None:
        return known

    return LEGACY_ROLE_ALIASES.get(role.strip().lower(), DEFAULT_ROLE)


def is_privileged(role: Any) -> bool:
    """True if the raw role normalizes to the unconditional-manage role."""
    return normalize_role(role) is PRIVILEGED_ROLE
