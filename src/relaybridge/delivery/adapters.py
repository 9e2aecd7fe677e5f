from __future__ import annotations

import threading
import time
import uuid
from typing import Any, Dict, List, Protocol, Tuple

from relaybridge.errors import ConfigError, DeliveryError
from relaybridge.schemas.envelope import Envelope
from relaybridge.schemas.push import encode_push_request
from relaybridge.utils.logger_util import get_logger

logger = get_logger(__name__)


class DeliveryClient(Protocol):
    """Pluggable outbound publisher.

    Implementations provide ``publish(topic, envelope)`` that returns the
    backend's message id, or raises DeliveryError. A client instance is shared
    by concurrent requests, so ``publish`` must be safe to call from several
    threads at once.
    """

    def publish(self, topic: str, envelope: Envelope) -> str:
        ...


class MockDeliveryClient:
    """In-memory client used in tests and local dev.

    Every publish is recorded in ``published`` as a (topic, envelope) pair.
    Set ``fail_with`` to a DeliveryError to make publishes fail, or ``delay``
    to make them slow.
    """

    def __init__(self, fail_with: DeliveryError | None = None, delay: float = 0.0):
        self.fail_with = fail_with
        self.delay = float(delay)
        self.published: List[Tuple[str, Envelope]] = []
        self.attempts = 0
        self._lock = threading.Lock()

    def publish(self, topic: str, envelope: Envelope) -> str:
        with self._lock:
            self.attempts += 1
        if self.delay:
            time.sleep(self.delay)
        if self.fail_with is not None:
            logger.debug("MockDeliveryClient failing publish to %s: %s", topic, self.fail_with)
            raise self.fail_with
        message_id = uuid.uuid4().hex
        with self._lock:
            self.published.append((topic, envelope))
        logger.debug("MockDeliveryClient published to %s id=%s bytes=%s", topic, message_id, len(envelope.data))
        return message_id


# google.api_core exception class names worth a redelivery
_RETRYABLE_GOOGLE_ERRORS = {
    "ServiceUnavailable",
    "DeadlineExceeded",
    "InternalServerError",
    "Aborted",
    "ResourceExhausted",
    "TooManyRequests",
}


class PubSubDeliveryClient:
    """Publishes to Google Cloud Pub/Sub.

    ``topic`` may be a bare topic name (resolved against ``project_id``) or a
    full ``projects/<p>/topics/<t>`` path. The underlying PublisherClient is
    created once and shared; pass ``publisher`` to inject a fake.
    """

    def __init__(self, project_id: str | None = None, timeout: float = 10.0, publisher: Any = None):
        self.project_id = project_id
        self.timeout = float(timeout)
        if publisher is None:
            from google.auth.exceptions import DefaultCredentialsError
            from google.cloud import pubsub_v1

            try:
                publisher = pubsub_v1.PublisherClient()
            except DefaultCredentialsError as e:
                raise ConfigError(f"no Google Cloud credentials for Pub/Sub: {e}") from e
        self._publisher = publisher
        logger.debug("PubSubDeliveryClient init: project=%s timeout=%s", self.project_id, self.timeout)

    def topic_path(self, topic: str) -> str:
        if topic.startswith("projects/"):
            return topic
        if not self.project_id:
            raise ConfigError(f"topic '{topic}' is not a full path and no project id is configured")
        return self._publisher.topic_path(self.project_id, topic)

    def publish(self, topic: str, envelope: Envelope) -> str:
        from google.api_core import exceptions as google_exceptions
        from google.auth import exceptions as auth_exceptions
        from concurrent.futures import TimeoutError as FutureTimeoutError

        path = self.topic_path(topic)
        try:
            future = self._publisher.publish(path, envelope.data, **envelope.attributes)
            message_id = future.result(timeout=self.timeout)
        except FutureTimeoutError as e:
            raise DeliveryError(f"publish to {path} timed out after {self.timeout}s", kind="timeout", retryable=True) from e
        except google_exceptions.GoogleAPICallError as e:
            name = type(e).__name__
            raise DeliveryError(f"publish to {path} failed: {e}", kind=name, retryable=name in _RETRYABLE_GOOGLE_ERRORS) from e
        except google_exceptions.RetryError as e:
            raise DeliveryError(f"publish to {path} gave up retrying: {e}", kind="RetryError", retryable=True) from e
        except auth_exceptions.GoogleAuthError as e:
            # transport hiccups while refreshing credentials may clear up; bad credentials will not
            retryable = isinstance(e, auth_exceptions.TransportError)
            raise DeliveryError(f"publish to {path} could not authenticate: {e}", kind=type(e).__name__, retryable=retryable) from e
        logger.debug("PubSubDeliveryClient published to %s id=%s", path, message_id)
        return str(message_id)


class RemoteDeliveryClient:
    """Forwards envelopes to an HTTP endpoint in push-request format.

    The endpoint receives ``{"message": {"data": <base64>, "attributes": {...}},
    "subscription": <topic>}`` and may answer with JSON carrying ``messageId``
    (or ``message_id``); otherwise a local id is generated.
    """

    def __init__(self, endpoint: str | None = None, timeout: float = 10.0, session: Any = None):
        if not endpoint:
            raise ConfigError("RemoteDeliveryClient needs an endpoint (REMOTE_DELIVERY_URL)")
        self.endpoint = endpoint
        self.timeout = float(timeout)
        if session is None:
            import requests

            session = requests.Session()
        self._session = session

    def publish(self, topic: str, envelope: Envelope) -> str:
        import requests

        body = encode_push_request(envelope, subscription=topic)
        try:
            resp = self._session.post(self.endpoint, json=body, timeout=self.timeout)
        except requests.Timeout as e:
            raise DeliveryError(f"remote delivery to {self.endpoint} timed out", kind="timeout", retryable=True) from e
        except requests.RequestException as e:
            raise DeliveryError(f"remote delivery to {self.endpoint} failed: {e}", kind="unreachable", retryable=True) from e

        if not resp.ok:
            retryable = resp.status_code == 429 or resp.status_code >= 500
            raise DeliveryError(
                f"remote delivery rejected: {resp.status_code} {resp.text}",
                kind=f"http_{resp.status_code}",
                retryable=retryable,
            )

        message_id = None
        try:
            data: Dict[str, Any] = resp.json()
            if isinstance(data, dict):
                message_id = data.get("messageId") or data.get("message_id")
        except ValueError:
            # plain-text acknowledgements are fine
            pass
        return str(message_id or uuid.uuid4().hex)


def create_delivery_client(name: str | None = None, **kwargs):
    n = (name or "pubsub").strip().lower()
    if n in ("pubsub", "gcp", "google"):
        return PubSubDeliveryClient(**kwargs)
    if n in ("remote", "http"):
        return RemoteDeliveryClient(**kwargs)
    if n in ("mock", "none"):
        return MockDeliveryClient(**kwargs)
    raise ValueError(f"Unknown delivery client name: {name}")
