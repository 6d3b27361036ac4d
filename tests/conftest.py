"""Fixtures compartilhadas: settings de teste, sqlite em arquivo temporário, relógio controlável."""

import os

# Antes de importar a app: Settings() lê o ambiente
os.environ.setdefault("SECRET_KEY", "test-secret-key-timewise-auth-0123456789abcdef")
os.environ["AUTO_MIGRATE"] = "false"
os.environ["METRICS_ENABLED"] = "false"
os.environ["LOG_JSON"] = "false"

from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient

from timewise_auth.core.config import Settings
from timewise_auth.core.store import InMemoryTokenStore
from timewise_auth.crud.user import user_crud
from timewise_auth.db.base import Base
from timewise_auth.db.init_db import init_db
from timewise_auth.db.session import make_engine, make_session_factory
from timewise_auth.main import create_app
from timewise_auth.schemas.identity import Identity
from timewise_auth.services.identity import SqlIdentityDirectory
from timewise_auth.services.token_service import TokenService
import timewise_auth.models  # noqa: F401

TEST_SECRET = "test-secret-key-timewise-auth-0123456789abcdef"
TEST_PASSWORD = "Password123!"


class FakeClock:
    def __init__(self, start: float = 1_800_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticDirectory:
    """IdentityLookup em memória para testes unitários do TokenService."""

    def __init__(self, identities: Optional[Dict[str, Identity]] = None):
        self.identities = dict(identities or {})

    def lookup(self, subject_id: str) -> Optional[Identity]:
        return self.identities.get(subject_id)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryTokenStore()


@pytest.fixture
def identities():
    return StaticDirectory({
        "u1": Identity(id="u1", email="u1@example.com", roles=["user"]),
        "a1": Identity(id="a1", email="admin@example.com", roles=["admin"], permissions=["users:write"]),
    })


@pytest.fixture
def service(store, identities, clock):
    return TokenService(store=store, identities=identities, secret=TEST_SECRET, clock=clock)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        SECRET_KEY=TEST_SECRET,
        DATABASE_URL=f"sqlite:///{tmp_path / 'auth.db'}",
        AUTO_MIGRATE=False,
        METRICS_ENABLED=False,
        LOG_JSON=False,
        TOKEN_RATE_LIMIT=1000,
    )


@pytest.fixture
def engine(settings):
    eng = make_engine(settings.DATABASE_URL)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        init_db(session)
        yield session


@pytest.fixture
def directory(session_factory, db):
    return SqlIdentityDirectory(session_factory)


@pytest.fixture
def make_user(db):
    def _make(email: str, *, roles=("user",), password: str = TEST_PASSWORD, status: str = "active"):
        return user_crud.create(db, name=email.split("@")[0], email=email, password=password, roles=roles, status=status)
    return _make


@pytest.fixture
def app(settings, engine, db):
    return create_app(settings, engine=engine)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def login(client):
    def _login(email: str, password: str = TEST_PASSWORD) -> dict:
        resp = client.post("/oauth/token", json={"grant_type": "password", "username": email, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()
    return _login


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
