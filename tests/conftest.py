"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, build_engine, get_db
from app.exceptions import NotificationError
from app.models.user import User  # noqa: F401
from app.repositories.user import UserRepository
from app.services.account import AccountService
from app.services.jwt import JWTService
from app.services.password import BcryptHasher

TEST_SECRET = "test-secret-key"


class RecordingNotifier:
    """Captures outgoing messages instead of sending them."""

    def __init__(self) -> None:
        self.activations: list[tuple[str, str]] = []
        self.resets: list[tuple[str, str]] = []

    def send_activation(self, email: str, token: str) -> None:
        self.activations.append((email, token))

    def send_password_reset(self, email: str, token: str) -> None:
        self.resets.append((email, token))


class FailingNotifier:
    """Notifier whose mail server is always down."""

    def send_activation(self, email: str, token: str) -> None:
        raise NotificationError("SMTP unavailable")

    def send_password_reset(self, email: str, token: str) -> None:
        raise NotificationError("SMTP unavailable")


class FakeClock:
    """Settable clock for expiry tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="session_factory")
def session_factory_fixture(tmp_path):
    """File-backed SQLite so separate sessions get separate connections."""
    engine = build_engine(f"sqlite:///{tmp_path / 'accounts.db'}")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture(name="hasher")
def hasher_fixture() -> BcryptHasher:
    """Minimum bcrypt cost keeps the suite fast."""
    return BcryptHasher(rounds=4)


@pytest.fixture(name="token_service")
def token_service_fixture() -> JWTService:
    return JWTService(secret_key=TEST_SECRET)


@pytest.fixture(name="notifier")
def notifier_fixture() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture(name="failing_notifier")
def failing_notifier_fixture() -> FailingNotifier:
    return FailingNotifier()


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0))


@pytest.fixture(name="account_service")
def account_service_fixture(db_session: Session, hasher, token_service, notifier, clock) -> AccountService:
    return AccountService(
        store=UserRepository(db_session),
        hasher=hasher,
        tokens=token_service,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture(name="client")
def client_fixture(db_session: Session, hasher, token_service, notifier):
    """Create a test client with overridden DB session and collaborators."""
    from app.dependencies import get_dummy_password_hash, get_notifier, get_password_hasher, get_token_service
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_dummy_password_hash] = lambda: hasher.hash("not-a-real-password")
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(name="active_user")
def active_user_fixture(account_service: AccountService, notifier: RecordingNotifier):
    """Register and activate a user; return its id, email, password and a bearer token."""
    result = account_service.register("a@x.com", "secret1")
    _, activation_token = notifier.activations[-1]
    account_service.activate(activation_token)
    login = account_service.login("a@x.com", "secret1")

    return {
        "user_id": result.user.id,
        "email": "a@x.com",
        "password": "secret1",
        "token": login.token,
    }
