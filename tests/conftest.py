"""
Shared fixtures: in-memory SQLite database, API client, account factory,
and a Stripe-Signature helper for webhook tests.
"""
import hashlib
import hmac
import time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from license_api.main import app
from license_api.core import config
from license_api.core.security import hash_password, create_access_token
from license_api.db.base import Base
from license_api.db.session import get_db
from license_api.db.account_repository import AccountRepository
import license_api.db.models  # noqa: F401

WEBHOOK_SECRET = "whsec_test_secret"

# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db():
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def repo(db):
    return AccountRepository(db)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_account(repo):
    """Factory: create an account, optionally with extra license/lock fields."""
    def _make(username="player_one", password="testpass123", is_admin=False, **fields):
        account = repo.create(username, hash_password(password), is_admin=is_admin)
        if fields:
            repo.update(account.id, fields)
        return repo.find_by_id(account.id)
    return _make


@pytest.fixture
def reload(db, repo):
    """Re-read an account after the API (another session) changed it."""
    def _reload(account_id):
        db.expire_all()
        return repo.find_by_id(account_id)
    return _reload


@pytest.fixture
def auth_headers():
    def _headers(account):
        token = create_access_token({"sub": str(account.id)})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def webhook_secret(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    return WEBHOOK_SECRET


@pytest.fixture
def sign():
    """Build a Stripe-Signature header the way Stripe does (HMAC-SHA256 over 't.payload')."""
    def _sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
        timestamp = int(timestamp if timestamp is not None else time.time())
        signed_payload = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
        signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={signature}"
    return _sign
