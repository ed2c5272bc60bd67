"""Pytest configuration and fixtures for RepoTrack tests.

Tests run against a fresh in-memory SQLite database per test (aiosqlite,
single shared connection), with Redis caching disabled, so no external
services are needed.
"""

import os
import tempfile
from typing import AsyncGenerator

# Must be set before app.config is imported
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CACHE_ENABLED"] = "false"
os.environ["NOTIFICATION_RELAY"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="repotrack-uploads-")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.jwt import create_access_token
from app.auth.password import hash_password
from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models import User
from app.models.enums import Area, RepositionType
from app.schemas.reposition import PieceIn, RepositionCreate
from app.services.documents import discard_written_files, forget_written_files
from app.services.notifications import dispatch_pending

TEST_PASSWORD = "testpassword123"


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for service-level tests and for seeding API tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, one committed session per request."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                discard_written_files(session)
                raise
            forget_written_files(session)
            await dispatch_pending(session)

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point document storage at a per-test directory."""
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path))
    return tmp_path


# ── Test Data Fixtures ───────────────────────────────────────────

async def _make_user(db: AsyncSession, username: str, area: Area, full_name: str) -> User:
    user = User(
        username=username,
        full_name=full_name,
        hashed_password=hash_password(TEST_PASSWORD),
        area=area.value,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def patronaje_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "patronaje1", Area.PATRONAJE, "Paula Patronaje")


@pytest_asyncio.fixture
async def corte_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "corte1", Area.CORTE, "Carlos Corte")


@pytest_asyncio.fixture
async def bordado_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "bordado1", Area.BORDADO, "Berta Bordado")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin1", Area.ADMIN, "Ana Admin")


@pytest_asyncio.fixture
async def operaciones_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "operaciones1", Area.OPERACIONES, "Oscar Operaciones")


@pytest_asyncio.fixture
async def almacen_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "almacen1", Area.ALMACEN, "Alma Almacen")


def auth_headers_for(user: User) -> dict:
    token = create_access_token(user_id=user.id, area=user.area)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def patronaje_headers(patronaje_user: User) -> dict:
    return auth_headers_for(patronaje_user)


@pytest.fixture
def corte_headers(corte_user: User) -> dict:
    return auth_headers_for(corte_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def operaciones_headers(operaciones_user: User) -> dict:
    return auth_headers_for(operaciones_user)


@pytest.fixture
def almacen_headers(almacen_user: User) -> dict:
    return auth_headers_for(almacen_user)


# ── Payloads ─────────────────────────────────────────────────────

def reposition_payload(**overrides) -> dict:
    """A valid ``repocision`` request body."""
    payload = {
        "type": RepositionType.REPOSICION.value,
        "requester_name": "Paula Patronaje",
        "damage_cause": "Operador de corte",
        "accident_type": "Corte mal realizado",
        "garment_model": "CAM-100",
        "fabric": "Popelina",
        "color": "Azul",
        "piece_type": "Delantero",
        "urgency": "urgente",
        "pieces": [
            {"size": "M", "quantity": 2},
            {"size": "L", "quantity": 1, "original_folio": "OF-778"},
        ],
    }
    payload.update(overrides)
    return payload


def reposition_create(**overrides) -> RepositionCreate:
    data = reposition_payload(**overrides)
    data["pieces"] = [PieceIn(**p) for p in data["pieces"]]
    return RepositionCreate(**data)


@pytest.fixture
def make_payload():
    return reposition_payload


@pytest.fixture
def make_create():
    return reposition_create


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Pure function tests, no database")
    config.addinivalue_line("markers", "service: Service-level tests against SQLite")
    config.addinivalue_line("markers", "api: HTTP tests through the ASGI app")
