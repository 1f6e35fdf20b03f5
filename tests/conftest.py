"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from errors import StoreUnavailable, TransportError  # noqa: E402
from models import db  # noqa: E402
from services.notifications import MailGateway, OutboxTransport  # noqa: E402
from services.passwords import PasswordHasher  # noqa: E402
from services.provisioning import UserProvisioningService  # noqa: E402
from services.user_store import FallbackUserStore  # noqa: E402

TEST_HASH_METHOD = "pbkdf2:sha256:1000"


class _BaseTestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key-that-is-long-enough-for-hs256"
    JWT_SECRET_KEY = SECRET_KEY
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MAIL_BACKEND = "outbox"
    PASSWORD_HASH_METHOD = TEST_HASH_METHOD
    RATE_LIMIT = "1000 per minute"


class DownStore:
    """A durable store whose every call fails as if the database were unreachable."""

    def _unavailable(self, *args, **kwargs):
        raise StoreUnavailable("database is down")

    create = find_many = find_unique = update = delete = _unavailable


class FailingTransport:
    """A mail transport that always fails."""

    def __init__(self):
        self.attempts = 0

    def deliver(self, message):
        self.attempts += 1
        raise TransportError("SMTP relay refused the connection")


@pytest.fixture()
def app(tmp_path) -> Flask:
    """Create a Flask application instance for tests."""

    upload_dir = tmp_path / "uploads"

    class TestConfig(_BaseTestConfig):
        UPLOAD_DIR = str(upload_dir)

    application = create_app(TestConfig)

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def outbox(app: Flask) -> list:
    """Messages captured by the outbox mail transport."""

    return app.extensions["provisioning"].notifier.transport.outbox


@pytest.fixture()
def store_outage(app: Flask, monkeypatch) -> None:
    """Make every durable store call raise ``StoreUnavailable``."""

    store = app.extensions["provisioning"].store
    for name in ("create", "find_many", "find_unique", "update", "delete"):
        monkeypatch.setattr(store, name, DownStore()._unavailable)


@pytest.fixture()
def transport() -> OutboxTransport:
    return OutboxTransport()


@pytest.fixture()
def make_service(transport):
    """Build a provisioning service over in-memory stores."""

    def _make(store=None, fallback=None, mail_transport=None, hasher=None):
        return UserProvisioningService(
            store=store if store is not None else FallbackUserStore(),
            fallback=fallback if fallback is not None else FallbackUserStore.with_default_admin(),
            notifier=MailGateway(mail_transport or transport, sender="LMS <no-reply@lms.test>"),
            hasher=hasher or PasswordHasher(TEST_HASH_METHOD),
        )

    return _make
