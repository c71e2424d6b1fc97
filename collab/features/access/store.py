"""
SQLAlchemy-backed override store.

Reads feed the resolver through `lookup` / `lookup_all_global`; writes are
the admin mutation path and always append an audit entry.
"""
from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from collab.features.access.exceptions import OverrideLookupError
from collab.features.access.levels import AccessLevel
from collab.features.access.models import PermissionAuditLog, UserSpacePermission
from collab.features.access.resolver import OverrideRecord, validate_scope
from collab.features.access.spaces import PlatformSpace, ScopeType
from collab.utils import get_logger


log = get_logger(__name__)

CHANGE_TYPE_OVERRIDE = "permission_override"
REMOVED_LEVEL = "default (removed override)"


def to_record(row: UserSpacePermission) -> OverrideRecord:
    """Convert a row, raising ValueError if it holds an unknown space or level."""
    return OverrideRecord(
        user_id=row.user_id,
        space=PlatformSpace(row.space),
        access_level=AccessLevel(row.access_level),
        scope_type=ScopeType(row.scope_type),
        scope_id=row.scope_id,
    )


def _scope_id_clause(scope_id: Optional[str]):
    if scope_id is None:
        return UserSpacePermission.scope_id.is_(None)
    return UserSpacePermission.scope_id == scope_id


class SqlOverrideStore:
    """Override store over the user_space_permissions table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fetch(self, user_id: str, stmt) -> List[OverrideRecord]:
        try:
            result = await self.db.execute(
                stmt.order_by(UserSpacePermission.created_at, UserSpacePermission.id)
            )
            return [to_record(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise OverrideLookupError(user_id, f"database error: {e}") from e
        except ValueError as e:
            raise OverrideLookupError(user_id, f"invalid override row: {e}") from e

    async def lookup(
        self,
        user_id: str,
        space: PlatformSpace,
        scope_type: Optional[ScopeType] = None,
        scope_id: Optional[str] = None,
    ) -> List[OverrideRecord]:
        """Global overrides for (user, space), plus those of `scope_type` if given."""
        scope_types = [ScopeType.GLOBAL.value]
        if scope_type is not None and ScopeType(scope_type) is not ScopeType.GLOBAL:
            scope_types.append(ScopeType(scope_type).value)

        stmt = select(UserSpacePermission).where(
            UserSpacePermission.user_id == user_id,
            UserSpacePermission.space == PlatformSpace(space).value,
            UserSpacePermission.scope_type.in_(scope_types),
        )
        return await self._fetch(user_id, stmt)

    async def lookup_all_global(self, user_id: str) -> List[OverrideRecord]:
        """Every global override of a user, across spaces."""
        stmt = select(UserSpacePermission).where(
            UserSpacePermission.user_id == user_id,
            UserSpacePermission.scope_type == ScopeType.GLOBAL.value,
        )
        return await self._fetch(user_id, stmt)

    async def get_override(
        self,
        user_id: str,
        space: PlatformSpace,
        scope_type: ScopeType = ScopeType.GLOBAL,
        scope_id: Optional[str] = None,
    ) -> Optional[UserSpacePermission]:
        stmt = select(UserSpacePermission).where(
            UserSpacePermission.user_id == user_id,
            UserSpacePermission.space == PlatformSpace(space).value,
            UserSpacePermission.scope_type == ScopeType(scope_type).value,
            _scope_id_clause(scope_id),
        ).order_by(UserSpacePermission.created_at, UserSpacePermission.id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def set_override(
        self,
        target_user_id: str,
        space: PlatformSpace,
        access_level: AccessLevel,
        changed_by_id: Optional[str],
        scope_type: ScopeType = ScopeType.GLOBAL,
        scope_id: Optional[str] = None,
    ) -> UserSpacePermission:
        """
        Create or update the override keyed by (user, space, scope_type, scope_id).

        An insert that loses a race with a concurrent insert of the same key is
        retried once as an update of the winning row.

        Raises:
            OverrideScopeError: scope_id does not fit scope_type
        """
        space = PlatformSpace(space)
        access_level = AccessLevel(access_level)
        scope_type = ScopeType(scope_type)
        validate_scope(scope_type, scope_id)

        try:
            row = await self._upsert(target_user_id, space, access_level, changed_by_id, scope_type, scope_id)
        except IntegrityError:
            await self.db.rollback()
            log.warning(
                "Concurrent override insert for user=%s space=%s scope=%s:%s, retrying as update",
                target_user_id, space.value, scope_type.value, scope_id,
            )
            row = await self._upsert(target_user_id, space, access_level, changed_by_id, scope_type, scope_id)

        log.info(
            "Override set: user=%s space=%s level=%s scope=%s:%s by=%s",
            target_user_id, space.value, access_level.value, scope_type.value, scope_id, changed_by_id,
        )
        return row

    async def _upsert(
        self,
        target_user_id: str,
        space: PlatformSpace,
        access_level: AccessLevel,
        changed_by_id: Optional[str],
        scope_type: ScopeType,
        scope_id: Optional[str],
    ) -> UserSpacePermission:
        existing = await self.get_override(target_user_id, space, scope_type, scope_id)
        previous = _audit_value(existing) if existing else None

        if existing is None:
            existing = UserSpacePermission(
                user_id=target_user_id,
                space=space.value,
                access_level=access_level.value,
                scope_type=scope_type.value,
                scope_id=scope_id,
                granted_by_id=changed_by_id,
            )
            self.db.add(existing)
        else:
            existing.access_level = access_level.value
            existing.granted_by_id = changed_by_id

        self.db.add(PermissionAuditLog(
            target_user_id=target_user_id,
            changed_by_id=changed_by_id,
            change_type=CHANGE_TYPE_OVERRIDE,
            previous_value=previous,
            new_value={
                "space": space.value,
                "access_level": access_level.value,
                "scope_type": scope_type.value,
                "scope_id": scope_id,
            },
        ))
        await self.db.commit()
        await self.db.refresh(existing)
        return existing

    async def remove_override(
        self,
        target_user_id: str,
        space: PlatformSpace,
        changed_by_id: Optional[str],
        scope_type: ScopeType = ScopeType.GLOBAL,
        scope_id: Optional[str] = None,
    ) -> bool:
        """
        Delete an override, restoring the role default.

        Returns:
            True if a row was deleted

        Raises:
            OverrideScopeError: scope_id does not fit scope_type
        """
        space = PlatformSpace(space)
        scope_type = ScopeType(scope_type)
        validate_scope(scope_type, scope_id)

        existing = await self.get_override(target_user_id, space, scope_type, scope_id)

        result = await self.db.execute(
            delete(UserSpacePermission).where(
                UserSpacePermission.user_id == target_user_id,
                UserSpacePermission.space == space.value,
                UserSpacePermission.scope_type == scope_type.value,
                _scope_id_clause(scope_id),
            )
        )

        self.db.add(PermissionAuditLog(
            target_user_id=target_user_id,
            changed_by_id=changed_by_id,
            change_type=CHANGE_TYPE_OVERRIDE,
            previous_value=_audit_value(existing) if existing else None,
            new_value={
                "space": space.value,
                "access_level": REMOVED_LEVEL,
                "scope_type": scope_type.value,
                "scope_id": scope_id,
            },
        ))
        await self.db.commit()

        log.info(
            "Override removed: user=%s space=%s scope=%s:%s by=%s (rows=%s)",
            target_user_id, space.value, scope_type.value, scope_id, changed_by_id, result.rowcount,
        )
        return bool(result.rowcount)

    async def list_audit(
        self,
        target_user_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[Sequence[PermissionAuditLog], int]:
        """Audit entries newest first, with the total count for pagination."""
        stmt = select(PermissionAuditLog)
        count_stmt = select(func.count()).select_from(PermissionAuditLog)
        if target_user_id:
            stmt = stmt.where(PermissionAuditLog.target_user_id == target_user_id)
            count_stmt = count_stmt.where(PermissionAuditLog.target_user_id == target_user_id)

        total = (await self.db.execute(count_stmt)).scalar_one()
        result = await self.db.execute(
            stmt.order_by(PermissionAuditLog.created_at.desc(), PermissionAuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return result.scalars().all(), total


def _audit_value(row: UserSpacePermission) -> Dict[str, Any]:
    return {
        "space": row.space,
        "access_level": row.access_level,
        "scope_type": row.scope_type,
        "scope_id": row.scope_id,
    }
