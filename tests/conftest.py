import os
from contextlib import redirect_stderr, redirect_stdout
from datetime import datetime, timedelta, timezone
from io import StringIO
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config

# Ensure tests run against SQLite when DATABASE_URL is not defined
os.environ.setdefault("DATABASE_URL", "sqlite:////tmp/promo_test.db")

from fastapi.testclient import TestClient

from app import dependencies
from app.main import app
from app.config import Settings
from app.db import SessionLocal, init_db
from app.models import PromoCode, User

API_HEADERS = {
    "X-API-Key": Settings().api_key,
    "X-API-Ver": "v1",
}


def _sqlite_path() -> Path | None:
    db_url = os.environ.get("DATABASE_URL")
    if db_url and db_url.startswith("sqlite:///"):
        return Path(db_url.replace("sqlite:///", ""))
    return None


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Apply Alembic migrations before running tests."""
    db_path = _sqlite_path()
    if db_path and db_path.exists():
        db_path.unlink()
    cfg_path = Path(__file__).resolve().parent.parent / "alembic.ini"
    config = Config(str(cfg_path))
    stdout_buf, stderr_buf = StringIO(), StringIO()
    try:
        with redirect_stdout(stdout_buf), redirect_stderr(stderr_buf):
            command.upgrade(config, "head")
    except Exception as exc:
        print("Alembic upgrade failed:", exc)
        print("stdout:\n", stdout_buf.getvalue())
        print("stderr:\n", stderr_buf.getvalue())
        raise
    init_db(Settings())


@pytest.fixture(scope="session", autouse=True)
def remove_test_db():
    """Remove temporary SQLite database after tests finish."""
    yield
    db_path = _sqlite_path()
    if db_path and db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="module")
def client(apply_migrations):
    """Yields a TestClient with lifespan events."""
    with TestClient(app) as client:
        yield client


@pytest.fixture(autouse=True)
def clean_tables(apply_migrations):
    with SessionLocal() as db:
        db.query(PromoCode).delete()
        db.query(User).delete()
        db.commit()
    yield


@pytest.fixture(autouse=True)
def mock_redis(monkeypatch):
    class _Pipe:
        def __init__(self, store):
            self.store = store
            self.ops = []

        def incr(self, key):
            self.ops.append(("incr", key))
            return self

        def expire(self, key, ttl):
            self.ops.append(("expire", key, ttl))
            return self

        async def execute(self):
            results = []
            for op in self.ops:
                if op[0] == "incr":
                    key = op[1]
                    self.store[key] = self.store.get(key, 0) + 1
                    results.append(self.store[key])
                else:
                    results.append(True)
            self.ops.clear()
            return results

    class _Redis:
        def __init__(self):
            self.store = {}

        def pipeline(self):
            return _Pipe(self.store)

    fake = _Redis()
    monkeypatch.setattr(dependencies, "redis_client", fake)
    yield


@pytest.fixture
def make_promo():
    """Factory inserting promo codes directly, bypassing admin validation."""

    def _make_promo(code: str = "WELCOME7", **fields) -> PromoCode:
        values = {
            "code": code,
            "active": True,
            "expires_at": None,
            "max_uses": 100,
            "current_uses": 0,
            "free_days": 7,
        }
        values.update(fields)
        with SessionLocal() as db:
            promo = PromoCode(**values)
            db.add(promo)
            db.commit()
            db.refresh(promo)
            return promo

    return _make_promo


@pytest.fixture
def make_user():
    def _make_user(user_id: str, **fields) -> User:
        with SessionLocal() as db:
            user = User(id=user_id, email=f"user{user_id}@example.com", **fields)
            db.add(user)
            db.commit()
            db.refresh(user)
            return user

    return _make_user


@pytest.fixture
def past():
    return datetime.now(timezone.utc) - timedelta(days=1)


@pytest.fixture
def future():
    return datetime.now(timezone.utc) + timedelta(days=30)
