import pytest

from relaybridge.errors import DeliveryError


def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.text == "All good!"


def test_health_ignores_broken_delivery(client, delivery):
    delivery.fail_with = DeliveryError("backend unreachable", kind="unreachable", retryable=True)
    r = client.get("/")
    assert r.status_code == 200
    assert r.text == "All good!"
    assert delivery.attempts == 0


def test_ping_is_relayed_as_pong(client, delivery, settings, make_push_body):
    r = client.post("/", json=make_push_body(b"X", source="a", subject="b"))
    assert r.status_code == 200
    assert r.text == "Message processed"

    assert len(delivery.published) == 1
    topic, envelope = delivery.published[0]
    assert topic == settings.outgoing_topic
    assert envelope.data == b"X"
    assert envelope.attributes == {"source": "b", "subject": "a"}


def test_binary_payload_forwarded_byte_for_byte(client, delivery, make_push_body):
    payload = bytes(range(256))
    r = client.post("/", json=make_push_body(payload))
    assert r.status_code == 200
    assert delivery.published[0][1].data == payload


@pytest.mark.parametrize("missing", ["source", "subject"])
def test_missing_attribute_is_rejected_without_publishing(client, delivery, make_push_body, missing):
    r = client.post("/", json=make_push_body(b"X", **{missing: None}))
    assert r.status_code == 400
    assert r.json()["error"] == "malformed_envelope"
    assert delivery.attempts == 0


def test_empty_attribute_is_rejected(client, delivery, make_push_body):
    r = client.post("/", json=make_push_body(b"X", source=""))
    assert r.status_code == 400
    assert delivery.attempts == 0


@pytest.mark.parametrize(
    "content",
    [
        b"not json at all",
        b'{"subscription": "s"}',
        b'{"message": {"attributes": {"source": "a", "subject": "b"}}}',
        b'{"message": {"data": "%%%", "attributes": {"source": "a", "subject": "b"}}}',
    ],
)
def test_unparseable_body_is_rejected(client, delivery, content):
    r = client.post("/", content=content, headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json()["error"] == "parse_error"
    assert delivery.attempts == 0


def test_delivery_failure_returns_502(client, delivery, make_push_body):
    delivery.fail_with = DeliveryError("topic not found", kind="NotFound", retryable=False)
    r = client.post("/", json=make_push_body())
    assert r.status_code == 502
    assert "processed" not in r.text.lower()
    body = r.json()
    assert body["error"] == "NotFound"
    assert body["retryable"] is False
    # exactly one attempt, no local retry
    assert delivery.attempts == 1
    assert delivery.published == []


def test_slow_delivery_times_out_as_502(settings, delivery, make_push_body):
    from dataclasses import replace

    from fastapi.testclient import TestClient

    from relaybridge.main import create_app

    delivery.delay = 0.5
    app = create_app(replace(settings, publish_timeout=0.05), delivery_client=delivery)
    r = TestClient(app).post("/", json=make_push_body())
    assert r.status_code == 502
    body = r.json()
    assert body["error"] == "timeout"
    assert body["retryable"] is True


def test_duplicate_deliveries_are_republished(client, delivery, make_push_body):
    body = make_push_body(b"dup")
    assert client.post("/", json=body).status_code == 200
    assert client.post("/", json=body).status_code == 200
    assert len(delivery.published) == 2


class BrokenClient:
    """Delivery client whose backend fails with a non-delivery exception."""

    def __init__(self, error):
        self.error = error
        self.attempts = 0

    def publish(self, topic, envelope):
        self.attempts += 1
        raise self.error


def test_unclassified_client_failure_returns_502(settings, make_push_body):
    from fastapi.testclient import TestClient

    from relaybridge.main import create_app

    broken = BrokenClient(RuntimeError("connection reset by peer"))
    r = TestClient(create_app(settings, delivery_client=broken)).post("/", json=make_push_body())
    assert r.status_code == 502
    assert "processed" not in r.text.lower()
    body = r.json()
    assert body["error"] == "RuntimeError"
    assert body["retryable"] is True
    assert broken.attempts == 1


def test_pubsub_auth_failure_returns_502(settings, make_push_body):
    from concurrent.futures import Future

    from fastapi.testclient import TestClient
    from google.auth import exceptions as auth_exceptions

    from relaybridge.delivery import PubSubDeliveryClient
    from relaybridge.main import create_app

    class MetadataDownPublisher:
        def topic_path(self, project, topic):
            return f"projects/{project}/topics/{topic}"

        def publish(self, topic, data, **attrs):
            fut = Future()
            fut.set_exception(auth_exceptions.TransportError("metadata server down"))
            return fut

    client = PubSubDeliveryClient(project_id="demo", publisher=MetadataDownPublisher())
    r = TestClient(create_app(settings, delivery_client=client)).post("/", json=make_push_body())
    assert r.status_code == 502
    assert r.json()["error"] == "TransportError"
