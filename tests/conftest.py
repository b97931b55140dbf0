"""Shared fixtures: in-memory database, seeded lookups, users and a fake file store"""

import os

# Settings are cached on first import, so the environment must be ready before app modules load
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENABLE_RATE_LIMITER"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from apps.issues.schemas import IssueCreate
from apps.issues.service import IssueService
from apps.storage.interface import FileStorage, StorageError, StoredFile, UploadedFile
from common.hashing import hash_password
from common.jwt import create_access_refresh_tokens
from constants.roles import ADMIN, CITIZEN, STAFF
from models.base import Base
from models.issue import Issue
from models.seed import seed_reference_data
from models.user import Role, User

import models.attachment  # noqa: F401
import models.comment  # noqa: F401


class FakeStorage(FileStorage):
    """In-memory FileStorage that records every call and can be told to fail"""

    def __init__(self):
        self.files = {}
        self.uploaded = []
        self.deleted = []
        self.delete_attempts = []
        self.fail_uploads_for = set()
        self.fail_deletes = False
        self._counter = 0

    async def upload(self, file: UploadedFile) -> StoredFile:
        if file.filename in self.fail_uploads_for:
            raise StorageError(f"upload refused for {file.filename}")
        self._counter += 1
        key = f"test/{self._counter}-{file.filename}"
        self.files[key] = file.content
        self.uploaded.append(key)
        return StoredFile(url=f"https://files.test/{key}", storage_key=key)

    async def delete(self, storage_key: str) -> None:
        self.delete_attempts.append(storage_key)
        if self.fail_deletes:
            raise StorageError(f"delete refused for {storage_key}")
        self.files.pop(storage_key, None)
        self.deleted.append(storage_key)


def upload(name: str = "photo.jpg", content: bytes = b"image-bytes", content_type: str = "image/jpeg") -> UploadedFile:
    return UploadedFile(filename=name, content_type=content_type, content=content)


def issue_payload(**overrides) -> IssueCreate:
    data = {
        "title": "Broken streetlight on Main Street",
        "description": "The streetlight at the corner has been out for a week.",
        "category": "Street Lighting",
        "latitude": 12.97,
        "longitude": 77.59,
    }
    data.update(overrides)
    return IssueCreate(**data)


def bearer(user: User) -> dict:
    tokens = create_access_refresh_tokens(str(user.id), sorted(user.role_names))
    return {"Authorization": f"Bearer {tokens['accessToken']}"}


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
    async with session_factory() as session:
        await seed_reference_data(session)
        yield session


@pytest.fixture
def storage():
    return FakeStorage()


async def _make_user(db: AsyncSession, user_name: str, *role_names: str) -> User:
    res = await db.execute(select(Role).where(Role.name.in_(role_names)))
    user = User(
        full_name=f"{user_name.title()} Tester",
        user_name=user_name,
        password_hash=hash_password("secret123"),
    )
    user.roles = list(res.scalars().all())
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def citizen(db):
    return await _make_user(db, "citizen", CITIZEN)


@pytest.fixture
async def other_citizen(db):
    return await _make_user(db, "neighbour", CITIZEN)


@pytest.fixture
async def staff(db):
    return await _make_user(db, "staffer", STAFF)


@pytest.fixture
async def admin(db):
    return await _make_user(db, "admin", ADMIN)


@pytest.fixture
def make_issue(db, storage):
    """Factory creating an issue through the service and returning the ORM row"""

    async def _make(reporter: User, files=None, **fields) -> Issue:
        detail = await IssueService.create_issue(db, storage, reporter, issue_payload(**fields), files or [upload()])
        return await db.get(Issue, detail["id"])

    return _make


@pytest.fixture
def broken_commit(db, monkeypatch):
    """Make the next commits on the session fail like a lost database connection"""

    async def _fail():
        raise OperationalError("COMMIT", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "commit", _fail)
