"""
Pytest configuration and fixtures for meta API tests
"""

import os
import sys
from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120

# Import Base first, before importing the app
from meta_api.auth import create_access_token, hash_password
from meta_api.constants.roles import RoleName
from meta_api.database import Base
from meta_api.models.post import Post, PostStatus
from meta_api.models.user import Role, User

# In-memory SQLite shared by every session of a test
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")

# Create test engine and session maker BEFORE importing the app
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,  # Set to True for SQL debugging
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)

# Now import and patch the app's database components
import meta_api.database as database_module  # noqa: E402
from main import app  # noqa: E402

# Replace the app's engine and session maker with test versions
database_module.engine = test_engine
database_module.AsyncSessionLocal = TestSessionLocal

ROLE_NAMES = [role.value for role in RoleName]


@pytest.fixture(scope="function")
async def setup_test_database():
    """
    Create a fresh schema with the default roles for each test that needs it.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        for name in ROLE_NAMES:
            session.add(Role(name=name, permissions=[]))
        await session.commit()

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
async def test_db(setup_test_database) -> AsyncGenerator[AsyncSession, None]:
    """Database session on the freshly created schema"""
    async with TestSessionLocal() as session:
        yield session


async def _create_user(db: AsyncSession, username: str, role_name: str) -> User:
    from sqlalchemy.future import select

    result = await db.execute(select(Role).where(Role.name == role_name))
    role = result.scalars().first()

    user = User(
        username=username,
        email=f"{username}@example.com",
        hashed_password=hash_password(f"{username}password"),
        role_id=role.id,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def test_author(test_db: AsyncSession) -> User:
    """User with the 'author' role"""
    return await _create_user(test_db, "author", "author")


@pytest.fixture
async def test_other_author(test_db: AsyncSession) -> User:
    """A second author, owning nothing the tests create"""
    return await _create_user(test_db, "otherauthor", "author")


@pytest.fixture
async def test_editor(test_db: AsyncSession) -> User:
    return await _create_user(test_db, "editor", "editor")


@pytest.fixture
async def test_admin(test_db: AsyncSession) -> User:
    return await _create_user(test_db, "admin", "admin")


@pytest.fixture
async def test_post(test_db: AsyncSession, test_author: User) -> Post:
    """Published post owned by test_author"""
    post = Post(title="Hello", body="World", status=PostStatus.PUBLISHED, author_id=test_author.id)
    test_db.add(post)
    await test_db.commit()
    await test_db.refresh(post)
    return post


def _headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": user.email}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def author_headers(test_author: User) -> dict:
    return _headers_for(test_author)


@pytest.fixture
def other_author_headers(test_other_author: User) -> dict:
    return _headers_for(test_other_author)


@pytest.fixture
def editor_headers(test_editor: User) -> dict:
    return _headers_for(test_editor)


@pytest.fixture
def admin_headers(test_admin: User) -> dict:
    return _headers_for(test_admin)


@pytest.fixture
async def client(setup_test_database):
    """httpx client driving the app in-process"""
    from httpx import ASGITransport, AsyncClient

    from meta_api.plugins.loader import initialize_plugins
    from meta_api.plugins.registry import PluginRegistry

    # ASGITransport does not run the lifespan, so plugins are loaded here
    app.state.plugin_registry = PluginRegistry()
    await initialize_plugins(app.state.plugin_registry)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
