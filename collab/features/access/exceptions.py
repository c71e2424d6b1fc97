"""
Access feature errors.
"""


class OverrideLookupError(Exception):
    """The override store could not be read. Distinct from "no overrides"."""

    def __init__(self, user_id: str, message: str):
        self.user_id = user_id
        super().__init__(f"Override lookup failed for user {user_id}: {message}")


class OverrideScopeError(ValueError):
    """Scope type and scope id do not agree (global needs none, scoped needs one)."""
