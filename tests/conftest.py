"""
Shared pytest fixtures for the blog admin tests.

Provides:
- Environment (signing secret, SQLite, upload dir) set before app imports
- Database fixtures (in-memory SQLite shared across sessions)
- App / TestClient fixtures with get_db overridden
- User and token factories
- In-memory stand-in for the Redis client
"""

import io
import os
import tempfile
from datetime import datetime
from typing import Dict, Generator, Optional

os.environ["JWT_SECRET"] = "test-secret-key-0123456789abcdef"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="blogadmin-uploads-")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import blogadmin.models  # noqa: F401
from blogadmin.core.permissions import Role
from blogadmin.core.tokens import get_token_service
from blogadmin.db.base import Base
from blogadmin.db.session import get_db
from blogadmin.main import create_app
from blogadmin.models.user import User
from blogadmin.services.auth_service import auth_service
from blogadmin.services.cache_service import cache_service

PASSWORD = "correct-horse"


# ============================================================================
# Redis stand-in
# ============================================================================

class InMemoryRedis:
    """Implements the handful of Redis calls CacheService makes."""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def exists(self, key):
        return int(key in self.store)

    def ping(self):
        return True


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> InMemoryRedis:
    fake = InMemoryRedis()
    monkeypatch.setattr(cache_service, "_client", fake)
    return fake


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


# ============================================================================
# App Fixtures
# ============================================================================

@pytest.fixture
def app(session_factory) -> FastAPI:
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


# ============================================================================
# Users and tokens
# ============================================================================

@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(role: Role = Role.lead, email: Optional[str] = None, name: Optional[str] = None) -> User:
        counter["n"] += 1
        return auth_service.create_user(
            db_session,
            name or f"{role.value} user {counter['n']}",
            email or f"{role.value}{counter['n']}@example.com",
            PASSWORD,
            role,
        )

    return _make


@pytest.fixture
def lead(make_user) -> User:
    return make_user(Role.lead)


@pytest.fixture
def admin(make_user) -> User:
    return make_user(Role.admin)


@pytest.fixture
def super_admin(make_user) -> User:
    return make_user(Role.super_admin)


def token_for(user_id: int, role: Role, issued_at: Optional[datetime] = None) -> str:
    return get_token_service().issue(user_id, role, issued_at=issued_at)


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    def _headers(user: User) -> Dict[str, str]:
        return auth_header(token_for(user.id, user.role))

    return _headers


# ============================================================================
# Images
# ============================================================================

def image_bytes(fmt: str = "PNG", size=(4, 4)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def upload_dir():
    from blogadmin.services.image_service import image_service
    return image_service.upload_dir
