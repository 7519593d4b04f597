"""Shared pytest fixtures."""

import json
import os

# Configure before opsboard is imported: settings and the engine are built at import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["NOTIFICATION_MODE"] = "sync"
os.environ["N8N_SEND_EMAIL_WEBHOOK"] = ""
os.environ["N8N_CREATE_INVOICE_WEBHOOK"] = ""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from opsboard import models  # noqa: F401
from opsboard.api.deps import get_notifier
from opsboard.core.database import Base, SessionLocal, engine, get_db
from opsboard.main import app
from opsboard.services.notifications import WebhookNotifier
from opsboard.services.row_store import RowStore


SEND_EMAIL_URL = "https://hooks.example.com/send-email"
CREATE_INVOICE_URL = "https://hooks.example.com/create-invoice"


class WebhookRecorder:
    """Mock transport target: records requests and answers with a configurable response."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.status_sequence = []
        self.body = {"ok": True}
        self.error = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error(f"simulated {self.error.__name__}", request=request)
        status_code = self.status_sequence.pop(0) if self.status_sequence else self.status_code
        return httpx.Response(status_code, json=self.body)

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]

    @property
    def urls(self):
        return [str(r.url) for r in self.requests]


@pytest.fixture
def db_session():
    """Fresh in-memory schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def row_store(db_session):
    return RowStore(db_session)


@pytest.fixture
def webhook():
    return WebhookRecorder()


@pytest.fixture
def notifier(webhook):
    """Notifier wired to the recorder with both webhooks configured."""
    return WebhookNotifier(
        transport=httpx.MockTransport(webhook.handler),
        send_email_url=SEND_EMAIL_URL,
        invoice_url=CREATE_INVOICE_URL,
    )


@pytest.fixture
def client(db_session, notifier):
    """API client sharing the test session and the mocked webhooks."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def seed_lead(row_store, now):
    """Insert a lead and return it as stored."""

    def _seed(name="Ada Lovelace", email="ada@example.com", company="Analytical Engines",
              source="manual", days_ago=1):
        return row_store.insert("leads", {
            "name": name,
            "email": email,
            "company": company,
            "source": source,
            "created_at": now - timedelta(days=days_ago),
        })[0]

    return _seed
