"""Test fixtures and configuration."""

from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from campus_insider.dependencies import get_db, get_session_factory
from campus_insider.main import create_app
from campus_insider.models import Base, User
from campus_insider.routers.feed import _feed_limiter
from campus_insider.services.access_tokens import issue_access_token


@pytest.fixture(autouse=True)
def _clear_rate_limiter():
    """Clear the feed rate limiter before every test."""
    _feed_limiter.clear()
    yield
    _feed_limiter.clear()


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a file-backed SQLite engine for tests.

    A file rather than :memory: so concurrent feed fetches each get their
    own connection.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with overridden DB dependencies."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable:
    """Return a coroutine that inserts a user with sensible defaults."""
    counter = {"n": 0}

    async def _make_user(**kwargs) -> User:
        counter["n"] += 1
        defaults = {
            "email": f"user{counter['n']}@campus.example",
            "first_name": f"First{counter['n']}",
            "last_name": f"Last{counter['n']}",
        }
        defaults.update(kwargs)
        user = User(**defaults)
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user


@pytest_asyncio.fixture
async def user_with_token(db_session: AsyncSession, make_user) -> dict:
    """Create a user and an access token, committed so the API can see them.

    Returns a dict with keys: ``user``, ``token``, ``headers``.
    """
    user = await make_user(first_name="Ada", last_name="Lovelace")
    token = await issue_access_token(db_session, user.id)
    await db_session.commit()
    return {
        "user": user,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }
