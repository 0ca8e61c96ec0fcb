import os

# Settings are read at import time, so the environment has to be ready first
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-do-not-use-in-production-0001")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-do-not-use-in-production-0002")
os.environ.setdefault("SQLALCHEMY_DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("COOKIE_SECURE", "false")
os.environ.setdefault("MAIL_FROM", "no-reply@example.com")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from umurava.config import settings  # noqa: E402
from umurava.core.security import hash_password  # noqa: E402
from umurava.database import Base, get_db  # noqa: E402
from umurava.main import create_app  # noqa: E402
from umurava.repositories import user_repo  # noqa: E402
from umurava.services.email_service import get_mailer  # noqa: E402

import umurava.models  # noqa: E402,F401

DEFAULT_PASSWORD = "Aa1!aaaa"


class FakeMailer:
    """Captures OTP emails instead of talking to SMTP."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def __call__(self, email_to: str, otp: str) -> None:
        if self.fail:
            raise ConnectionError("SMTP unavailable")
        self.sent.append((email_to, otp))

    def last_code_for(self, email: str) -> str:
        for recipient, code in reversed(self.sent):
            if recipient == email:
                return code
        raise AssertionError(f"no OTP sent to {email}")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make(email="a@b.com", password=DEFAULT_PASSWORD, role="user", first_name="Ada", last_name="Lovelace"):
        return user_repo.create_user(
            db,
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=hash_password(password),
            role=role,
        )

    return _make


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(session_factory, mailer):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    def _register(email="a@b.com", password=DEFAULT_PASSWORD, role="user", first_name="Ada", last_name="Lovelace"):
        return client.post(
            "/auth/register",
            json={
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "password": password,
                "role": role,
            },
        )

    return _register


@pytest.fixture
def login(client, mailer):
    """Runs password + OTP login and returns the verify-otp response."""

    def _login(email="a@b.com", password=DEFAULT_PASSWORD):
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        code = mailer.last_code_for(email)
        return client.post("/auth/verify-otp", json={"email": email, "otp": code})

    return _login


def refresh_cookie(response) -> str:
    return response.cookies.get(settings.refresh_cookie_name)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
