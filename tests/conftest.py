"""Pytest configuration and fixtures."""

import os

# Settings are read at import time, so configure the environment first.
os.environ["APP_ENV"] = "test"
os.environ["BCRYPT_MIN_COST"] = "true"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["MAIL_BACKEND"] = "console"

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import chirp.models  # noqa: E402,F401
from chirp.database import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from chirp.models.user import User  # noqa: E402
from chirp.services import credentials as credentials_module  # noqa: E402
from chirp.services import micropost as micropost_module  # noqa: E402
from chirp.services.credentials import CredentialService  # noqa: E402
from chirp.services.mailer import MailMessage, Mailer  # noqa: E402
from chirp.services.micropost import MicropostService  # noqa: E402


class FakeClock:
    """Controllable replacement for the wall clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingMailBackend:
    """Keeps sent messages in memory."""

    def __init__(self) -> None:
        self.sent: list[MailMessage] = []

    def send(self, message: MailMessage) -> None:
        self.sent.append(message)


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture(name="mail_backend")
def mail_backend_fixture() -> RecordingMailBackend:
    return RecordingMailBackend()


@pytest.fixture(name="mailer")
def mailer_fixture(mail_backend: RecordingMailBackend) -> Mailer:
    return Mailer(backend=mail_backend)


@pytest.fixture(name="credentials")
def credentials_fixture(mailer: Mailer, clock: FakeClock) -> CredentialService:
    return CredentialService(mailer=mailer, clock=clock)


@pytest.fixture(name="microposts")
def microposts_fixture(clock: FakeClock) -> MicropostService:
    return MicropostService(clock=clock)


@pytest.fixture(name="make_user")
def make_user_fixture(db_session: Session, credentials: CredentialService):
    """Factory creating users, activated unless asked otherwise."""

    def _make_user(
        name: str = "Test User",
        email: str = "test@example.com",
        password: str = "password123",
        activated: bool = True,
    ) -> User:
        user = credentials.register(db_session, name, email, password).user
        if activated:
            credentials.activate(db_session, user)
        return user

    return _make_user


@pytest.fixture(name="client")
def client_fixture(db_session: Session, credentials: CredentialService, microposts: MicropostService):
    """Create a test client with overridden DB dependency, test services and disabled rate limiting."""
    from chirp.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    credentials_module._credential_service = credentials
    micropost_module._micropost_service = microposts
    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()
    credentials_module._credential_service = None
    micropost_module._micropost_service = None


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    """Build a bearer header for a user."""
    from chirp.services.jwt import get_jwt_service

    def _auth_headers(user: User) -> dict:
        token = get_jwt_service().create_token(user_id=user.id, email=user.email, name=user.name)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
