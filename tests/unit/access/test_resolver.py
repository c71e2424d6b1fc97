"""Tests for override-aware access resolution."""

import logging
from unittest.mock import AsyncMock

import pytest

from collab.features.access.exceptions import OverrideLookupError, OverrideScopeError
from collab.features.access.levels import AccessLevel
from collab.features.access.matrix import resolve_access_from_role
from collab.features.access.resolver import OverrideRecord, resolve_access, resolve_all_spaces
from collab.features.access.roles import PlatformRole
from collab.features.access.spaces import PLATFORM_SPACES, PlatformSpace, ScopeType


USER_ID = "user-abc"


def _lookup(*records: OverrideRecord) -> AsyncMock:
    """Store double returning `records` for every query."""
    return AsyncMock(return_value=list(records))


def _global(space: PlatformSpace, level: AccessLevel, user_id: str = USER_ID) -> OverrideRecord:
    return OverrideRecord(user_id=user_id, space=space, access_level=level)


def _scoped(space: PlatformSpace, level: AccessLevel, scope_type: ScopeType, scope_id: str) -> OverrideRecord:
    return OverrideRecord(user_id=USER_ID, space=space, access_level=level, scope_type=scope_type, scope_id=scope_id)


class TestOverrideRecord:
    def test_global_rejects_scope_id(self) -> None:
        with pytest.raises(OverrideScopeError):
            OverrideRecord(USER_ID, PlatformSpace.TASKS, AccessLevel.VIEW, ScopeType.GLOBAL, "x")

    @pytest.mark.parametrize("scope_type", [ScopeType.INITIATIVE, ScopeType.CONGRESS])
    def test_scoped_requires_scope_id(self, scope_type: ScopeType) -> None:
        with pytest.raises(OverrideScopeError):
            OverrideRecord(USER_ID, PlatformSpace.TASKS, AccessLevel.VIEW, scope_type, None)

    def test_coerces_stored_strings(self) -> None:
        record = OverrideRecord(USER_ID, "congress", "manage", "congress", "c-1")  # type: ignore[arg-type]
        assert record.space is PlatformSpace.CONGRESS
        assert record.access_level is AccessLevel.MANAGE
        assert record.scope_type is ScopeType.CONGRESS

    def test_rejects_unknown_level(self) -> None:
        with pytest.raises(ValueError):
            OverrideRecord(USER_ID, PlatformSpace.TASKS, "owner")  # type: ignore[arg-type]


class TestResolveAccessAdmin:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("space", PLATFORM_SPACES)
    async def test_admin_is_manage_without_store(self, space: PlatformSpace) -> None:
        lookup = _lookup(_global(space, AccessLevel.INVISIBLE))

        level = await resolve_access(USER_ID, "PlatformAdmin", space, lookup)

        assert level is AccessLevel.MANAGE
        lookup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_legacy_admin_alias_skips_store(self) -> None:
        lookup = AsyncMock(side_effect=RuntimeError("store down"))

        assert await resolve_access(USER_ID, "admin", PlatformSpace.ADMIN, lookup) is AccessLevel.MANAGE
        lookup.assert_not_awaited()


class TestResolveAccessPrecedence:
    @pytest.mark.asyncio
    async def test_scoped_override_beats_global(self) -> None:
        lookup = _lookup(
            _global(PlatformSpace.CONGRESS, AccessLevel.VIEW),
            _scoped(PlatformSpace.CONGRESS, AccessLevel.MANAGE, ScopeType.CONGRESS, "congress-123"),
        )

        level = await resolve_access(
            USER_ID, "Clinician", PlatformSpace.CONGRESS, lookup, ScopeType.CONGRESS, "congress-123"
        )

        assert level is AccessLevel.MANAGE

    @pytest.mark.asyncio
    async def test_non_matching_scope_falls_back_to_global_override(self) -> None:
        lookup = _lookup(
            _global(PlatformSpace.CONGRESS, AccessLevel.VIEW),
            _scoped(PlatformSpace.CONGRESS, AccessLevel.MANAGE, ScopeType.CONGRESS, "congress-123"),
        )

        level = await resolve_access(
            USER_ID, "HubCoordinator", PlatformSpace.CONGRESS, lookup, ScopeType.CONGRESS, "other-congress"
        )

        assert level is AccessLevel.VIEW

    @pytest.mark.asyncio
    async def test_scope_type_must_match_too(self) -> None:
        lookup = _lookup(_scoped(PlatformSpace.INITIATIVES, AccessLevel.MANAGE, ScopeType.CONGRESS, "id-1"))

        level = await resolve_access(
            USER_ID, "BoardMember", PlatformSpace.INITIATIVES, lookup, ScopeType.INITIATIVE, "id-1"
        )

        assert level is AccessLevel.VIEW

    @pytest.mark.asyncio
    async def test_unscoped_call_ignores_scoped_records(self) -> None:
        lookup = _lookup(_scoped(PlatformSpace.TASKS, AccessLevel.MANAGE, ScopeType.INITIATIVE, "init-1"))

        level = await resolve_access(USER_ID, "Moderator", PlatformSpace.TASKS, lookup)

        assert level is AccessLevel.INVISIBLE

    @pytest.mark.asyncio
    async def test_global_override_can_lower_default(self) -> None:
        lookup = _lookup(_global(PlatformSpace.BUREAU, AccessLevel.INVISIBLE))

        assert await resolve_access(USER_ID, "HubCoordinator", PlatformSpace.BUREAU, lookup) is AccessLevel.INVISIBLE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [r for r in PlatformRole if r is not PlatformRole.PLATFORM_ADMIN])
    async def test_no_overrides_is_role_default(self, role: PlatformRole) -> None:
        for space in PLATFORM_SPACES:
            level = await resolve_access(USER_ID, role.value, space, _lookup())
            assert level is resolve_access_from_role(role, space)

    @pytest.mark.asyncio
    async def test_global_scope_argument_is_ignored(self) -> None:
        lookup = _lookup(_global(PlatformSpace.STORIES, AccessLevel.EDIT))

        level = await resolve_access(USER_ID, "Clinician", PlatformSpace.STORIES, lookup, ScopeType.GLOBAL, "x")

        assert level is AccessLevel.EDIT
        lookup.assert_awaited_once_with(USER_ID, PlatformSpace.STORIES, None, None)

    @pytest.mark.asyncio
    async def test_scope_type_without_id_is_unscoped(self) -> None:
        lookup = _lookup()

        await resolve_access(USER_ID, "Clinician", PlatformSpace.CONGRESS, lookup, ScopeType.CONGRESS, None)

        lookup.assert_awaited_once_with(USER_ID, PlatformSpace.CONGRESS, None, None)

    @pytest.mark.asyncio
    async def test_passes_requested_scope_to_store(self) -> None:
        lookup = _lookup()

        await resolve_access(USER_ID, "Clinician", "congress", lookup, "congress", "c-9")  # type: ignore[arg-type]

        lookup.assert_awaited_once_with(USER_ID, PlatformSpace.CONGRESS, ScopeType.CONGRESS, "c-9")


class TestResolveAccessDuplicates:
    @pytest.mark.asyncio
    async def test_first_global_record_wins(self) -> None:
        lookup = _lookup(
            _global(PlatformSpace.TASKS, AccessLevel.VIEW),
            _global(PlatformSpace.TASKS, AccessLevel.MANAGE),
        )

        assert await resolve_access(USER_ID, "Clinician", PlatformSpace.TASKS, lookup) is AccessLevel.VIEW

    @pytest.mark.asyncio
    async def test_first_scoped_record_wins(self) -> None:
        lookup = _lookup(
            _scoped(PlatformSpace.TASKS, AccessLevel.INVISIBLE, ScopeType.INITIATIVE, "i-1"),
            _scoped(PlatformSpace.TASKS, AccessLevel.MANAGE, ScopeType.INITIATIVE, "i-1"),
        )

        level = await resolve_access(USER_ID, "Clinician", PlatformSpace.TASKS, lookup, ScopeType.INITIATIVE, "i-1")

        assert level is AccessLevel.INVISIBLE

    @pytest.mark.asyncio
    async def test_records_for_other_users_or_spaces_are_ignored(self) -> None:
        lookup = _lookup(
            _global(PlatformSpace.TASKS, AccessLevel.MANAGE, user_id="someone-else"),
            _global(PlatformSpace.BOARD, AccessLevel.MANAGE),
        )

        assert await resolve_access(USER_ID, "Clinician", PlatformSpace.TASKS, lookup) is AccessLevel.EDIT


class TestResolveAccessFailures:
    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, caplog: pytest.LogCaptureFixture) -> None:
        lookup = AsyncMock(side_effect=ConnectionError("timeout"))

        with caplog.at_level(logging.ERROR, logger="collab.features.access.resolver"):
            with pytest.raises(OverrideLookupError) as exc_info:
                await resolve_access(USER_ID, "Clinician", PlatformSpace.TASKS, lookup)

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert any("lookup failed" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_lookup_error_is_reraised_unchanged(self) -> None:
        error = OverrideLookupError(USER_ID, "boom")
        lookup = AsyncMock(side_effect=error)

        with pytest.raises(OverrideLookupError) as exc_info:
            await resolve_access(USER_ID, "Clinician", PlatformSpace.TASKS, lookup)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_unknown_space_is_invisible_without_store(self, caplog: pytest.LogCaptureFixture) -> None:
        lookup = _lookup(_global(PlatformSpace.TASKS, AccessLevel.MANAGE))

        with caplog.at_level(logging.ERROR, logger="collab.features.access.resolver"):
            level = await resolve_access(USER_ID, "Clinician", "wiki", lookup)

        assert level is AccessLevel.INVISIBLE
        lookup.assert_not_awaited()
        assert any("Unknown space" in r.message for r in caplog.records)

    @pytest.mark.asyncio
    async def test_unknown_space_for_admin_is_manage(self) -> None:
        lookup = _lookup()

        assert await resolve_access(USER_ID, "PlatformAdmin", "wiki", lookup) is AccessLevel.MANAGE
        lookup.assert_not_awaited()

    def test_unknown_space_role_default_is_invisible(self) -> None:
        assert resolve_access_from_role("HubCoordinator", "wiki") is AccessLevel.INVISIBLE


class TestEndToEndScenario:
    @pytest.mark.asyncio
    async def test_patient_advocate_initiatives(self) -> None:
        records: list[OverrideRecord] = []
        lookup = AsyncMock(side_effect=lambda *args: list(records))

        async def check(scope_id=None) -> AccessLevel:
            scope_type = ScopeType.INITIATIVE if scope_id else None
            return await resolve_access(USER_ID, "PatientAdvocate", PlatformSpace.INITIATIVES, lookup, scope_type, scope_id)

        assert await check() is AccessLevel.EDIT

        records.append(_global(PlatformSpace.INITIATIVES, AccessLevel.VIEW))
        assert await check() is AccessLevel.VIEW

        records.append(_scoped(PlatformSpace.INITIATIVES, AccessLevel.MANAGE, ScopeType.INITIATIVE, "init-42"))
        assert await check("init-42") is AccessLevel.MANAGE
        assert await check("init-99") is AccessLevel.VIEW


class TestResolveAllSpaces:
    @pytest.mark.asyncio
    async def test_admin_gets_manage_everywhere_without_store(self) -> None:
        lookup_all = _lookup(_global(PlatformSpace.ADMIN, AccessLevel.INVISIBLE))

        result = await resolve_all_spaces(USER_ID, "PlatformAdmin", lookup_all)

        assert result == {space: AccessLevel.MANAGE for space in PLATFORM_SPACES}
        lookup_all.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", list(PlatformRole))
    async def test_totality(self, role: PlatformRole) -> None:
        result = await resolve_all_spaces(USER_ID, role.value, _lookup())

        assert list(result) == list(PLATFORM_SPACES)

    @pytest.mark.asyncio
    async def test_global_overrides_replace_defaults(self) -> None:
        lookup_all = _lookup(
            _global(PlatformSpace.PARTNERS, AccessLevel.VIEW),
            _global(PlatformSpace.INITIATIVES, AccessLevel.INVISIBLE),
        )

        result = await resolve_all_spaces(USER_ID, "Researcher", lookup_all)

        assert result[PlatformSpace.PARTNERS] is AccessLevel.VIEW
        assert result[PlatformSpace.INITIATIVES] is AccessLevel.INVISIBLE
        assert result[PlatformSpace.TASKS] is AccessLevel.EDIT

    @pytest.mark.asyncio
    async def test_scoped_records_are_excluded(self) -> None:
        lookup_all = _lookup(_scoped(PlatformSpace.BOARD, AccessLevel.MANAGE, ScopeType.CONGRESS, "c-1"))

        result = await resolve_all_spaces(USER_ID, "Clinician", lookup_all)

        assert result[PlatformSpace.BOARD] is AccessLevel.INVISIBLE

    @pytest.mark.asyncio
    async def test_first_duplicate_wins(self) -> None:
        lookup_all = _lookup(
            _global(PlatformSpace.BOARD, AccessLevel.VIEW),
            _global(PlatformSpace.BOARD, AccessLevel.MANAGE),
        )

        result = await resolve_all_spaces(USER_ID, "Clinician", lookup_all)

        assert result[PlatformSpace.BOARD] is AccessLevel.VIEW

    @pytest.mark.asyncio
    async def test_no_overrides_matches_single_space_resolution(self) -> None:
        result = await resolve_all_spaces(USER_ID, "IndustryPartner", _lookup())

        for space in PLATFORM_SPACES:
            assert result[space] is await resolve_access(USER_ID, "IndustryPartner", space, _lookup())

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self) -> None:
        lookup_all = AsyncMock(side_effect=TimeoutError())

        with pytest.raises(OverrideLookupError):
            await resolve_all_spaces(USER_ID, "Clinician", lookup_all)
