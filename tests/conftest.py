"""Test configuration and fixtures.

MongoDB is replaced by mongomock-motor so the suite needs no running server,
and every component takes a controllable clock so expiry is deterministic.
"""

from datetime import datetime, timedelta
from typing import Iterable
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from api.app import create_app
from auth.credentials import CredentialStore
from auth.database import AuthDatabase
from auth.email_service import EmailService
from auth.otp import OTPManager
from auth.password_reset import PasswordResetManager
from auth.registration import RegistrationFlow
from config.settings import Settings

STRONG_PASSWORD = "Passw0rd!"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def fixed_codes(codes: Iterable[str]):
    """Passcode generator returning ``codes`` in order."""
    it = iter(codes)
    return lambda: next(it)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 15, 12, 0, 0))


@pytest.fixture
def database() -> AuthDatabase:
    db = AuthDatabase("mongodb://unused", "credential_core_test")
    db.use_database(AsyncMongoMockClient()["credential_core_test"])
    return db


@pytest.fixture
def credentials(database, clock) -> CredentialStore:
    return CredentialStore(database, bcrypt_rounds=4, clock=clock)


@pytest.fixture
def otp_manager(database, clock) -> OTPManager:
    return OTPManager(database, clock=clock)


@pytest.fixture
def registration(credentials, otp_manager) -> RegistrationFlow:
    return RegistrationFlow(credentials, otp_manager)


@pytest.fixture
def resets(database, credentials, clock) -> PasswordResetManager:
    return PasswordResetManager(database, credentials, clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        jwt_secret="test-secret-key",
        bcrypt_rounds=4,
        admin_email="admin@example.com",
        admin_api_key="admin-key",
        app_base_url="https://app.example.com",
    )


@pytest.fixture
def mailer() -> MagicMock:
    """Recording stand-in for the notifier."""
    mock = MagicMock(spec=EmailService)
    mock.is_configured = False
    return mock


@pytest.fixture
def app(settings, database, mailer):
    application = create_app(settings, database)
    application.state.email_service = mailer
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
