"""
Shared fixtures: in-memory SQLite store, injected settings, test client.
"""

import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fareharbor_sync.config import Settings
from fareharbor_sync.database import Base, build_session_factory
from fareharbor_sync import models  # noqa: F401
from fareharbor_sync.main import create_app
from fareharbor_sync.services.signature import compute_signature

TEST_SECRET = "test-webhook-secret"


@pytest.fixture
def engine():
    """Single shared in-memory connection so every session sees the same data"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_settings():
    def _make(**overrides):
        values = {
            "environment": "test",
            "database_url": "sqlite://",
            "fareharbor_webhook_secret": "",
            "webhook_signature_required": False,
            "audit_rejected_webhooks": False,
            "log_json": False,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def make_client(session_factory, make_settings):
    clients = []

    def _make(**overrides):
        app = create_app(make_settings(**overrides), session_factory)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    """Client with signature verification disabled"""
    return make_client()


@pytest.fixture
def signed_client(make_client):
    return make_client(fareharbor_webhook_secret=TEST_SECRET)


def post_webhook(client, body, secret=None, signature=None, header="X-FareHarbor-Signature"):
    """POST a body to /webhook, signing it when a secret is given"""
    raw = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    headers = {"Content-Type": "application/json"}
    if secret is not None:
        headers[header] = "sha256=" + compute_signature(raw, secret)
    elif signature is not None:
        headers[header] = signature
    return client.post("/webhook", content=raw, headers=headers)


def booking_event(event_type="booking.created", fareharbor_id="BK100", email="a@example.com", amount=50, **booking):
    """Webhook body in the nested booking shape"""
    data = {"display_id": fareharbor_id, "amount": amount}
    if email is not None:
        data["contact"] = {"email": email, "name": "Alex Rivera", "phone": "+1 555 0100"}
    data.update(booking)
    return {"event_type": event_type, "payload": {"booking": data}}
