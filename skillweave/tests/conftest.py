"""
Shared test fixtures.

Route tests run the real app through TestClient with ``get_db`` pointed at
a throwaway SQLite file; the lifespan (Postgres, Redis) is never started.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["CACHE_ENABLED"] = "false"
os.environ["SUPABASE_URL"] = ""
os.environ["VITE_SUPABASE_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import skillweave.models  # noqa: F401
from skillweave.core.cache import clear_stale, discard_stale
from skillweave.core.database import Base, get_db
from skillweave.main import app

PASSWORD = "secret123"


@pytest.fixture
def sqlite_file(tmp_path):
    path = tmp_path / "skillweave_test.db"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    engine.dispose()
    return path


@pytest.fixture
def session_factory(sqlite_file):
    engine = create_async_engine(f"sqlite+aiosqlite:///{sqlite_file}", poolclass=NullPool)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    """AsyncSession for service-level tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                discard_stale(session)
                raise
            else:
                await clear_stale(session)

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def signup(client, email, password=PASSWORD, **extra):
    return client.post("/api/auth-direct/signup", json={"email": email, "password": password, **extra})


def signin(client, email, password=PASSWORD):
    return client.post("/api/auth-direct/signin", json={"email": email, "password": password})


def login_headers(client, email, password=PASSWORD):
    """Sign up (if needed) and sign in; returns the Authorization header."""
    signup(client, email, password)
    response = signin(client, email, password)
    assert response.status_code == 200, response.text
    token = response.json()["data"]["session"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


def promote_to_admin(sqlite_file, email):
    engine = create_engine(f"sqlite:///{sqlite_file}")
    with engine.begin() as conn:
        conn.execute(text("UPDATE users SET role = 'admin' WHERE email = :email"), {"email": email})
    engine.dispose()


@pytest.fixture
def user_headers(client):
    return login_headers(client, "jane@example.com")


@pytest.fixture
def other_headers(client):
    return login_headers(client, "john@example.com")


@pytest.fixture
def admin_headers(client, sqlite_file):
    headers = login_headers(client, "admin@example.com")
    promote_to_admin(sqlite_file, "admin@example.com")
    return headers
