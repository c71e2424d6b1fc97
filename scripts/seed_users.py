"""
Seed script to populate one demo user per platform role.

Run this script after database initialization to create:
- One user for each PlatformRole
- A legacy-spelled role row to exercise role normalization
- A sample global and scoped override on the PatientAdvocate user

Usage:
    uv run python -m scripts.seed_users
"""
import asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from collab.core.database.engine import get_db, init_db
from collab.features.access.levels import AccessLevel
from collab.features.access.roles import PlatformRole
from collab.features.access.spaces import PlatformSpace, ScopeType
from collab.features.access.store import SqlOverrideStore
from collab.features.users.models import User
from collab.utils import configure_logging, get_logger


configure_logging()
log = get_logger(__name__)


DEMO_USERS = [
    ("advocate@example.org", "Ada Advocate", PlatformRole.PATIENT_ADVOCATE.value),
    ("clinician@example.org", "Cleo Clinician", PlatformRole.CLINICIAN.value),
    ("researcher@example.org", "Rui Researcher", PlatformRole.RESEARCHER.value),
    ("moderator@example.org", "Mo Moderator", PlatformRole.MODERATOR.value),
    ("hub@example.org", "Hana Hub", PlatformRole.HUB_COORDINATOR.value),
    ("partner@example.org", "Pat Partner", PlatformRole.INDUSTRY_PARTNER.value),
    ("board@example.org", "Bo Board", PlatformRole.BOARD_MEMBER.value),
    ("admin@example.org", "Adi Admin", PlatformRole.PLATFORM_ADMIN.value),
    # Older rows still carry snake_case roles
    ("legacy@example.org", "Lee Legacy", "hub_coordinator"),
]


async def seed_users(db: AsyncSession) -> dict[str, User]:
    """
    Create demo users, skipping emails that already exist.
    
    Returns:
        Dictionary mapping email to User
    """
    log.info("Creating demo users...")
    users = {}
    
    for email, name, role in DEMO_USERS:
        result = await db.execute(select(User).where(User.email == email))
        existing = result.scalars().first()
        
        if existing:
            log.debug("User %s already exists, skipping", email)
            users[email] = existing
            continue
        
        user = User(email=email, name=name, role=role)
        db.add(user)
        users[email] = user
        log.info("Created user %s (%s)", email, role)
    
    await db.commit()
    for user in users.values():
        await db.refresh(user)
    return users


async def seed_overrides(db: AsyncSession, users: dict[str, User]):
    """Give the advocate view-only initiatives, with manage on one initiative."""
    store = SqlOverrideStore(db)
    advocate = users["advocate@example.org"]
    admin = users["admin@example.org"]
    
    await store.set_override(advocate.id, PlatformSpace.INITIATIVES, AccessLevel.VIEW, admin.id)
    await store.set_override(
        advocate.id, PlatformSpace.INITIATIVES, AccessLevel.MANAGE, admin.id,
        scope_type=ScopeType.INITIATIVE, scope_id="init-42",
    )


async def main():
    """Main function to seed users and overrides."""
    log.info("Starting user seeding...")
    
    log.info("Initializing database tables...")
    await init_db()
    
    async for db in get_db():
        try:
            users = await seed_users(db)
            await seed_overrides(db, users)
            log.info("User seeding completed successfully!")
            for email, user in users.items():
                log.info("  - %s: %s (%s)", user.id, email, user.role)
        except Exception as e:
            log.error("Error seeding users: %s", e, exc_info=True)
            await db.rollback()
            raise
        
        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
