"""
Override and audit tables for space access.

Levels, spaces and scope types are stored as their string values and
converted back to enums by the override store.
"""
from typing import Any, Dict
from sqlalchemy import String, ForeignKey, JSON, CheckConstraint, UniqueConstraint, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from collab.core.database.base import Base, TimestampMixin, generate_ulid


class UserSpacePermission(Base, TimestampMixin):
    """
    One override of a user's default access on a space.
    
    A user has at most one global row per space plus any number of scoped rows
    with distinct (scope_type, scope_id).
    """
    __tablename__ = "user_space_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "space", "scope_type", "scope_id", name="uq_user_space_scope"),
        CheckConstraint(
            "(scope_type = 'global' AND scope_id IS NULL) OR "
            "(scope_type <> 'global' AND scope_id IS NOT NULL)",
            name="ck_scope_id_matches_scope_type",
        ),
        # NULL scope_ids never collide in uq_user_space_scope
        Index(
            "uq_user_space_global",
            "user_id",
            "space",
            unique=True,
            sqlite_where=text("scope_type = 'global'"),
            postgresql_where=text("scope_type = 'global'"),
        ),
        Index("ix_user_space_permissions_lookup", "user_id", "space", "scope_type"),
    )
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    space: Mapped[str] = mapped_column(String(50), nullable=False)
    access_level: Mapped[str] = mapped_column(String(20), nullable=False)
    scope_type: Mapped[str] = mapped_column(String(20), nullable=False, default="global")
    scope_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    
    # Admin who last set this override
    granted_by_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    
    def __repr__(self) -> str:
        scope = self.scope_type if self.scope_id is None else f"{self.scope_type}:{self.scope_id}"
        return f"<UserSpacePermission(user_id={self.user_id}, space={self.space}, level={self.access_level}, scope={scope})>"


class PermissionAuditLog(Base, TimestampMixin):
    """
    Append-only record of override changes.
    
    previous_value / new_value hold {"space", "access_level", "scope_type", "scope_id"}.
    """
    __tablename__ = "permission_audit_log"
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    target_user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    changed_by_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    change_type: Mapped[str] = mapped_column(String(50), nullable=False, default="permission_override")
    previous_value: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    new_value: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    
    def __repr__(self) -> str:
        return f"<PermissionAuditLog(id={self.id}, target={self.target_user_id}, by={self.changed_by_id})>"
