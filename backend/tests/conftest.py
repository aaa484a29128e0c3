"""
Munich Weekly Backend — Test Configuration (conftest.py)
=========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment overrides are applied before any munich_weekly import so
       the settings singleton, the engine and the storage root all point at
       throwaway resources.

Fixture Hierarchy:
    Function-scoped:
    ├── db_engine:           in-memory SQLite with every table created
    ├── session_factory:     async_sessionmaker bound to db_engine
    ├── db_session:          one AsyncSession for service tests
    ├── factory:             ModelFactory that commits seed rows
    ├── mock_db_session:     AsyncMock session (no database at all)
    ├── temp_storage:        temporary storage root
    ├── make_image_bytes:    Pillow-generated JPEG/PNG bytes of a given size
    ├── sample_image_bytes:  a 1200×800 PNG
    └── test_client:         httpx AsyncClient wired to the app
"""

import io
import os
import tempfile
from datetime import timedelta
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

# Before any munich_weekly import: the settings singleton reads these once.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="munich_weekly_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from munich_weekly.database import Base, get_db_session, utcnow
from munich_weekly.models.gallery import GalleryFeaturedConfig, GalleryIssueConfig  # noqa: F401
from munich_weekly.models.issue import Issue
from munich_weekly.models.promotion import PromotionConfig, PromotionImage  # noqa: F401
from munich_weekly.models.submission import STATUS_PENDING, Submission
from munich_weekly.models.user import ROLE_ADMIN, ROLE_USER, User
from munich_weekly.models.vote import Vote
from munich_weekly.services.image_dimension_service import image_dimension_service
from munich_weekly.services.masonry_order_service import masonry_order_service


# ══════════════════════════════════════════════════════════════════════════
# Autouse
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clear_service_caches():
    """Each test gets a fresh database, so ids repeat; cached layouts must not."""
    masonry_order_service.clear()
    image_dimension_service.clear_cache()
    yield
    masonry_order_service.clear()
    image_dimension_service.clear_cache()


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


class ModelFactory:
    """
    Creates committed rows, one short-lived session per call.

    Seed everything a test needs before the code under test opens its own
    transaction on the shared connection.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._counter = 0

    async def _save(self, obj):
        async with self._session_factory() as session:
            session.add(obj)
            await session.commit()
        return obj

    async def user(self, nickname: Optional[str] = None, admin: bool = False, banned: bool = False) -> User:
        self._counter += 1
        return await self._save(
            User(
                email=f"user{self._counter}@example.com",
                nickname=nickname or f"user{self._counter}",
                role=ROLE_ADMIN if admin else ROLE_USER,
                is_banned=banned,
                created_at=utcnow(),
            )
        )

    async def issue(
        self,
        title: str = "Munich at Night",
        submission_open: bool = True,
        voting_open: bool = True,
    ) -> Issue:
        now = utcnow()
        if submission_open:
            submission_start, submission_end = now - timedelta(days=3), now + timedelta(days=3)
        else:
            submission_start, submission_end = now - timedelta(days=20), now - timedelta(days=10)
        if voting_open:
            voting_start, voting_end = now - timedelta(days=1), now + timedelta(days=5)
        else:
            voting_start, voting_end = now - timedelta(days=9), now - timedelta(days=2)
        if voting_start < submission_start:
            voting_start = submission_start
        return await self._save(
            Issue(
                title=title,
                description="Weekly theme",
                submission_start=submission_start,
                submission_end=submission_end,
                voting_start=voting_start,
                voting_end=voting_end,
                created_at=now,
            )
        )

    async def submission(
        self,
        user: User,
        issue: Issue,
        status: str = STATUS_PENDING,
        width: Optional[int] = None,
        height: Optional[int] = None,
        image_url: Optional[str] = None,
        description: Optional[str] = None,
        submitted_at=None,
    ) -> Submission:
        self._counter += 1
        submission = Submission(
            user_id=user.id,
            issue_id=issue.id,
            status=status,
            description=description,
            image_url=image_url or f"https://cdn.example.com/photos/{self._counter}.jpg",
            submitted_at=submitted_at or utcnow() + timedelta(seconds=self._counter),
        )
        if width is not None and height is not None:
            submission.set_image_dimensions(width, height)
        return await self._save(submission)

    async def vote(self, submission: Submission, visitor_id: Optional[str] = None, user: Optional[User] = None) -> Vote:
        return await self._save(
            Vote(
                submission_id=submission.id,
                issue_id=submission.issue_id,
                visitor_id=visitor_id,
                user_id=user.id if user is not None else None,
                voted_at=utcnow(),
            )
        )

    async def add(self, obj):
        return await self._save(obj)


@pytest_asyncio.fixture
async def factory(session_factory):
    return ModelFactory(session_factory)


@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    Usage:
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await issue_service.get_issue(mock_db_session, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def make_image_bytes():
    """Factory: make_image_bytes(width, height, fmt="PNG") → encoded image bytes."""

    def _make(width: int, height: int, fmt: str = "PNG") -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", (width, height), color=(200, 120, 40)).save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


@pytest.fixture
def sample_image_bytes(make_image_bytes):
    return make_image_bytes(1200, 800)


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the app in-process.

    get_db_session is overridden to use the test engine, with the same
    commit/rollback behavior as the real dependency.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from munich_weekly.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"X-User-Id": str(user.id)}


@pytest.fixture
def as_user():
    """as_user(user) → headers identifying the caller to the app."""
    return auth_headers
