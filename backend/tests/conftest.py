"""
Pytest configuration and fixtures for Relish backend tests.
"""
import os
from collections.abc import AsyncGenerator, Awaitable, Callable

# Deterministic test key; must be set before relish modules read settings
TEST_MASTER_KEY_HEX = "0f1e2d3c4b5a69788796a5b4c3d2e1f00112233445566778899aabbccddeeff0"
os.environ["SECRET_MASTER_KEY"] = TEST_MASTER_KEY_HEX
os.environ.setdefault("APP_ENV", "development")

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from relish.config import Settings, get_settings
from relish.infrastructure.database.connection import build_session_factory
from relish.infrastructure.database.models import Base, Profile, User
from relish.services import CoreServices, build_services
from relish.shared.blind_index import BlindIndex
from relish.shared.crypto import EnvelopeCipher
from relish.shared.keys import KeyRing, derive_key_ring, parse_master_key

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Test settings; nothing here points at a real database or Redis."""
    return Settings(
        _env_file=None,
        app_env="development",
        secret_master_key=TEST_MASTER_KEY_HEX,
        followup_backend="inline",
    )


@pytest.fixture
def key_ring() -> KeyRing:
    return derive_key_ring(parse_master_key(TEST_MASTER_KEY_HEX))


@pytest.fixture
def cipher(key_ring: KeyRing) -> EnvelopeCipher:
    return EnvelopeCipher(key_ring.enc_key)


@pytest.fixture
def blind_index(key_ring: KeyRing) -> BlindIndex:
    return BlindIndex(key_ring.mac_key)


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with foreign keys enforced."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(async_engine)


@pytest.fixture
async def services(
    session_factory: async_sessionmaker[AsyncSession],
    key_ring: KeyRing,
    test_settings: Settings,
) -> AsyncGenerator[CoreServices, None]:
    core = build_services(session_factory, key_ring, test_settings)
    yield core
    await core.aclose()


@pytest.fixture
def make_user(services: CoreServices) -> Callable[..., Awaitable[User]]:
    """Factory registering a user with an optional public profile."""

    async def _make_user(
        email: str,
        *,
        display_name: str | None = None,
        email_public: str | None = None,
        phone_public: str | None = None,
        company: str | None = None,
        title: str | None = None,
        with_profile: bool = True,
    ) -> User:
        user = await services.users.register(email)
        if with_profile:
            async with services.session_factory() as session:
                session.add(
                    Profile(
                        user_id=user.id,
                        is_default=True,
                        display_name=display_name,
                        email_public=email_public,
                        phone_public=phone_public,
                        company=company,
                        title=title,
                    )
                )
                await session.commit()
        return user

    return _make_user


@pytest.fixture
async def owner(make_user) -> User:
    """Page owner with a full public profile."""
    return await make_user(
        "owner@example.com",
        display_name="Olivia Owner",
        email_public="olivia@owner.example",
        phone_public="+1 555 0100",
        company="Owner & Co",
        title="Founder",
    )


@pytest.fixture
async def visitor(make_user) -> User:
    """User who later signs in and claims leads."""
    return await make_user("bob@x.com", display_name="Bob Visitor", email_public="bob@x.com")
