"""
User profile model with ULID primary keys.
"""
from datetime import datetime
from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from collab.core.database.base import Base, TimestampMixin, generate_ulid


class User(Base, TimestampMixin):
    """
    Platform user profile.
    
    The id matches the `sub` claim of tokens issued by the hosted auth backend.
    `role` is stored exactly as written by onboarding or older imports and must
    go through normalize_role before it is used for access decisions.
    """
    __tablename__ = "users"
    
    # Primary key using ULID (Universally Unique Lexicographically Sortable Identifier)
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    # User information
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    
    # Raw platform role (untrusted, may hold legacy spellings)
    role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    
    # Optional fields
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    bio: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    
    # Status flags
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    
    # Track last login
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)
    
    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, role={self.role!r})>"
