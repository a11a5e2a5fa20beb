"""Shared test configuration. Environment is set before the app is imported."""

import os
import tempfile

_db_dir = tempfile.mkdtemp(prefix="tickethub-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ALLOWED_HOSTS"] = '["testserver"]'
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: E402,F401
from app.database import Base, SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.schemas.user import UserCreate, UserResponse  # noqa: E402
from app.services.auth import AuthService, AUTH_COOKIE_NAME  # noqa: E402
from app.services.session import SessionContext  # noqa: E402
from app.services.snapshot import snapshot_cache  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    snapshot_cache.clear()
    yield
    snapshot_cache.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_user(db, email, display_name=None, password="password123"):
    return AuthService.create_user(db, UserCreate(email=email, display_name=display_name, password=password))


def context_for(user) -> SessionContext:
    return SessionContext(user=UserResponse.model_validate(user))


@pytest.fixture
def seller(db):
    return make_user(db, "alice@mail.com", display_name="Alice")


@pytest.fixture
def buyer(db):
    return make_user(db, "bob@mail.com", display_name="Bob")


def client_for(user=None) -> TestClient:
    cookies = {}
    if user is not None:
        cookies[AUTH_COOKIE_NAME] = AuthService.create_access_token(data={"sub": user.id})
    client = TestClient(app, cookies=cookies)
    # Picks up the CSRF cookie
    client.get("/")
    return client


def post_form(client: TestClient, url: str, data: dict = None):
    form = dict(data or {})
    form["csrf_token"] = client.cookies.get("csrf_token")
    return client.post(url, data=form, follow_redirects=False)


@pytest.fixture
def seller_client(seller):
    return client_for(seller)


@pytest.fixture
def buyer_client(buyer):
    return client_for(buyer)


@pytest.fixture
def anonymous_client():
    return client_for()
