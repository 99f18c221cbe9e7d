"""Pytest fixtures for the picfeed backend."""

from collections.abc import AsyncIterator, Callable, Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

from alembic import command
from alembic.config import Config
import jwt
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from api.deps import get_db
from app import create_app
from core.config import settings
from services import storage

IDENTITY_TEST_SECRET = "picfeed-identity-test-secret-0123456789abcdef"


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))

    original_database_url = settings.database_url
    try:
        settings.database_url = database_url
        command.upgrade(alembic_cfg, "head")
    finally:
        settings.database_url = original_database_url


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    db_path = db_dir / "backend-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest_asyncio.fixture()
async def test_engine(test_database_url: str) -> AsyncIterator:
    """Create an async engine bound to the migrated SQLite test database."""
    engine = create_async_engine(
        test_database_url,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker) -> AsyncIterator[None]:
    """Clear tables before each test to guarantee isolation."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


class FakeS3Error(Exception):
    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


class FakeMinio:
    """In-memory stand-in for the MinIO client used by ``services.storage``."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.removed: list[str] = []
        self.signatures = 0
        self.failure: Exception | None = None

    def put(self, object_name: str, data: bytes = b"image") -> None:
        self.objects[object_name] = data

    def _maybe_fail(self) -> None:
        if self.failure is not None:
            raise self.failure

    def bucket_exists(self, bucket_name: str) -> bool:
        self._maybe_fail()
        return True

    def make_bucket(self, bucket_name: str) -> None:
        return None

    def presigned_put_object(self, bucket_name, object_name, expires):
        self._maybe_fail()
        return f"https://storage.test/{bucket_name}/{object_name}?upload=1&ttl={int(expires.total_seconds())}"

    def presigned_get_object(self, bucket_name, object_name, expires):
        self._maybe_fail()
        # Every call signs a new URL, mimicking expiring signatures.
        self.signatures += 1
        return f"https://storage.test/{bucket_name}/{object_name}?signature={self.signatures}"

    def stat_object(self, bucket_name, object_name):
        self._maybe_fail()
        if object_name not in self.objects:
            raise FakeS3Error("NoSuchKey")
        return {"size": len(self.objects[object_name])}

    def remove_object(self, bucket_name, object_name):
        self._maybe_fail()
        if object_name not in self.objects:
            raise FakeS3Error("NoSuchKey")
        del self.objects[object_name]
        self.removed.append(object_name)


@pytest.fixture()
def fake_minio(monkeypatch: pytest.MonkeyPatch) -> FakeMinio:
    client = FakeMinio()
    monkeypatch.setattr(storage, "get_minio_client", lambda: client)
    monkeypatch.setattr(storage, "S3Error", FakeS3Error)
    return client


@pytest.fixture(autouse=True)
def _identity_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setattr(settings, "identity_jwt_secret", IDENTITY_TEST_SECRET)
    monkeypatch.setattr(settings, "identity_jwks_url", None)
    monkeypatch.setattr(settings, "identity_jwt_algorithms", ["HS256"])
    monkeypatch.setattr(settings, "identity_issuer", None)
    monkeypatch.setattr(settings, "identity_audience", None)
    yield


def make_identity_token(
    external_id: str,
    *,
    expires_in: timedelta = timedelta(hours=1),
    secret: str = IDENTITY_TEST_SECRET,
) -> str:
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {"sub": external_id, "iat": now, "exp": now + expires_in},
        secret,
        algorithm="HS256",
    )


@pytest.fixture()
def identity_token_factory() -> Callable[..., str]:
    return make_identity_token


@pytest.fixture()
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Return a factory of Authorization headers for an identity subject."""

    def _headers(external_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_identity_token(external_id)}"}

    return _headers


@pytest.fixture()
def app(session_maker) -> Iterator[FastAPI]:
    """Create the FastAPI app with a test database dependency override."""
    application = create_app()

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    yield application


@pytest_asyncio.fixture()
async def async_client(app: FastAPI, fake_minio: FakeMinio) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
