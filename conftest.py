import os
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from fastapi import HTTPException, status
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.exc import OperationalError

# Load .env.test for tests when present (e.g. to point at a disposable Postgres)
from dotenv import load_dotenv

env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.base import Base
from services.portal_service.app.main import app
from services.portal_service.app.tests.stubs import (
    InMemoryPortalRepository,
    StubSupabase,
)
from services.portal_service.routers._helpers import (
    get_identity_provider,
    get_repository,
)
from services.portal_service.services import IdentityProvider

# Clear cached settings to reload with new env vars
get_settings.cache_clear()
settings = get_settings()


class SessionState:
    """The bearer session the test client presents; None means logged out."""

    def __init__(self):
        self.user: Optional[AuthUser] = None

    def login(self, user: AuthUser) -> None:
        self.user = user

    def logout(self) -> None:
        self.user = None


@pytest.fixture
def repository() -> InMemoryPortalRepository:
    return InMemoryPortalRepository()


@pytest.fixture
def supabase_stub() -> StubSupabase:
    return StubSupabase()


@pytest.fixture
def session_state() -> SessionState:
    return SessionState()


@pytest_asyncio.fixture
async def client(
    repository, supabase_stub, session_state
) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient against the portal app with the repository, the
    identity provider and the bearer session swapped for test doubles.
    """

    async def _optional_user():
        return session_state.user

    async def _current_user():
        if session_state.user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
            )
        return session_state.user

    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_identity_provider] = lambda: IdentityProvider(
        supabase_stub, supabase_stub
    )
    app.dependency_overrides[get_optional_user] = _optional_user
    app.dependency_overrides[get_current_user] = _current_user

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_engine():
    """
    Create an engine against DATABASE_URL, creating every table.
    Tests that need it are skipped when no database is reachable.
    """
    # Fix for running tests on host where host.docker.internal might not resolve
    db_url = settings.DATABASE_URL.replace("host.docker.internal", "localhost")

    engine = create_async_engine(db_url, future=True)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except (OperationalError, OSError):
        await engine.dispose()
        pytest.skip("Database not available for tests")

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session that rolls back after the test.
    We use join_transaction_mode="create_savepoint" to allow the session to be used
    as if it were a top-level session (supporting commit/rollback) while actually
    running inside a transaction that we rollback at the end.
    """
    connection = await test_engine.connect()
    transaction = await connection.begin()

    session_factory = async_sessionmaker(
        bind=connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = session_factory()

    try:
        yield session
    finally:
        await session.close()
        await transaction.rollback()
        await connection.close()


class Church:
    """Two branches with a member in A, an admin for each and a super admin."""

    def __init__(self, repository: InMemoryPortalRepository):
        from services.portal_service.models import AppRole
        from tests.factories import BranchFactory, ProfileFactory

        self.branch_a = BranchFactory.create(name="Central Assembly")
        self.branch_b = BranchFactory.create(name="Riverside Chapel")
        self.member = ProfileFactory.create(
            full_name="Mary Member", branch_id=self.branch_a.id
        )
        self.admin_a = ProfileFactory.create(
            full_name="Adam Admin",
            primary_role=AppRole.ADMIN,
            branch_id=self.branch_a.id,
        )
        self.admin_b = ProfileFactory.create(
            full_name="Beth Admin",
            primary_role=AppRole.ADMIN,
            branch_id=self.branch_b.id,
        )
        self.super_admin = ProfileFactory.create(
            full_name="Sam Super", primary_role=AppRole.SUPER_ADMIN
        )
        for branch in (self.branch_a, self.branch_b):
            repository.branches[branch.id] = branch
        for profile in (self.member, self.admin_a, self.admin_b, self.super_admin):
            repository.profiles[profile.id] = profile


@pytest.fixture
def church(repository) -> Church:
    return Church(repository)
