"""Unit tests for session -> profile resolution and the fallback profile."""

import uuid

import pytest
from services.portal_service.app.tests.stubs import (
    InMemoryPortalRepository,
    make_user,
)
from services.portal_service.models import AppRole
from services.portal_service.services import (
    SessionResolver,
    SessionStatus,
    build_fallback_profile,
)
from tests.factories import ProfileFactory


@pytest.mark.asyncio
async def test_no_session_resolves_to_anonymous():
    ctx = await SessionResolver(InMemoryPortalRepository()).resolve(None)
    assert ctx.status == SessionStatus.ANONYMOUS
    assert ctx.profile is None
    assert ctx.is_admin is False
    assert ctx.is_super_admin is False


@pytest.mark.asyncio
async def test_persisted_profile_wins_over_metadata():
    repo = InMemoryPortalRepository()
    profile = ProfileFactory.create(primary_role=AppRole.ADMIN)
    repo.profiles[profile.id] = profile
    user = make_user(
        user_id=profile.id,
        email=profile.email,
        app_metadata={"primary_role": "super_admin"},
    )

    ctx = await SessionResolver(repo).resolve(user)

    assert ctx.profile is profile
    assert ctx.profile_is_fallback is False
    assert ctx.is_admin is True
    assert ctx.is_super_admin is False


@pytest.mark.asyncio
async def test_new_identity_gets_member_fallback_with_session_email():
    repo = InMemoryPortalRepository()
    user = make_user(user_id="brand-new", email="new@faithconnect.org")

    ctx = await SessionResolver(repo).resolve(user)

    assert ctx.status == SessionStatus.AUTHENTICATED
    assert ctx.profile_is_fallback is True
    assert ctx.profile.id == "brand-new"
    assert ctx.profile.email == "new@faithconnect.org"
    assert ctx.profile.primary_role == AppRole.MEMBER
    # Persisted so later requests (and transfer foreign keys) see it
    assert repo.profiles["brand-new"] is ctx.profile


@pytest.mark.asyncio
async def test_fallback_is_returned_even_when_persisting_it_fails():
    repo = InMemoryPortalRepository()
    repo.fail_on.add("add_profile")

    ctx = await SessionResolver(repo).resolve(make_user(user_id="u-2"))

    assert ctx.profile_is_fallback is True
    assert ctx.profile.id == "u-2"
    assert repo.profiles == {}


@pytest.mark.asyncio
async def test_store_failure_resolves_to_fallback_without_persisting():
    repo = InMemoryPortalRepository()
    repo.fail_on.add("get_profile")

    ctx = await SessionResolver(repo).resolve(make_user(user_id="u-3"))

    assert ctx.status == SessionStatus.AUTHENTICATED
    assert ctx.profile_is_fallback is True
    assert ctx.profile.primary_role == AppRole.MEMBER
    assert repo.profiles == {}


@pytest.mark.asyncio
async def test_slow_store_times_out_to_fallback():
    repo = InMemoryPortalRepository()
    repo.profile_delay = 1.0

    ctx = await SessionResolver(repo, timeout=0.01).resolve(make_user(user_id="u-4"))

    assert ctx.profile_is_fallback is True
    assert ctx.profile.id == "u-4"


@pytest.mark.asyncio
async def test_stalled_fallback_insert_is_bounded():
    repo = InMemoryPortalRepository()
    repo.insert_delay = 1.0

    ctx = await SessionResolver(repo, timeout=0.01).resolve(make_user(user_id="u-6"))

    assert ctx.profile_is_fallback is True
    assert ctx.profile.id == "u-6"
    assert ctx.profile.primary_role == AppRole.MEMBER
    assert "u-6" not in repo.profiles


def test_fallback_uses_metadata_hints():
    branch_id = uuid.uuid4()
    user = make_user(
        user_id="u-5",
        email=None,
        user_metadata={"full_name": "Ruth Obi", "branch_id": str(branch_id)},
        app_metadata={"primary_role": "pastor"},
    )

    profile = build_fallback_profile(user)

    assert profile.email == ""
    assert profile.full_name == "Ruth Obi"
    assert profile.branch_id == branch_id
    assert profile.primary_role == AppRole.PASTOR


def test_fallback_ignores_role_claimed_in_user_metadata():
    user = make_user(user_metadata={"primary_role": "super_admin"})
    assert build_fallback_profile(user).primary_role == AppRole.MEMBER


def test_fallback_ignores_malformed_branch_hint():
    user = make_user(user_metadata={"branch_id": "not-a-uuid"})
    assert build_fallback_profile(user).branch_id is None
