import base64
from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient

from relaybridge.config import Settings
from relaybridge.delivery import MockDeliveryClient
from relaybridge.main import create_app

OUTGOING_TOPIC = "pong-messages"


@pytest.fixture
def settings() -> Settings:
    return Settings(outgoing_topic=OUTGOING_TOPIC, delivery_client="mock", publish_timeout=2.0)


@pytest.fixture
def delivery() -> MockDeliveryClient:
    """Recording delivery client; tests flip fail_with/delay as needed."""
    return MockDeliveryClient()


@pytest.fixture
def app(settings, delivery):
    """Relay app wired to the mock delivery client."""
    return create_app(settings, delivery_client=delivery)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_push_body() -> Callable[..., Dict[str, Any]]:
    """
    Return a helper to construct a push request body.
    Usage: body = make_push_body(b"X", source="a", subject="b")
    Pass source=None / subject=None to leave the attribute out.
    """
    def _make(data: bytes = b"ping", source: str | None = "alice", subject: str | None = "bob", **extra_attrs) -> Dict[str, Any]:
        attributes = dict(extra_attrs)
        if source is not None:
            attributes["source"] = source
        if subject is not None:
            attributes["subject"] = subject
        return {
            "message": {
                "data": base64.b64encode(data).decode("ascii"),
                "attributes": attributes,
                "messageId": "1234567890",
                "publishTime": "2026-10-19T12:00:00.000Z",
            },
            "subscription": "projects/demo/subscriptions/ping-push",
        }
    return _make
