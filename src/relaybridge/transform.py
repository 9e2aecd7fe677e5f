from __future__ import annotations

from relaybridge.errors import MalformedEnvelope
from relaybridge.schemas.envelope import Envelope


def _require(envelope: Envelope, name: str) -> str:
    value = envelope.attributes.get(name)
    if value is None or not str(value).strip():
        raise MalformedEnvelope(f"attribute '{name}' is missing or empty")
    return value


def transform(envelope: Envelope) -> Envelope:
    """Swap source and subject, keep data untouched.

    Only source and subject are carried over; other inbound attributes are
    dropped. Applying it twice gives back the original source/subject.
    """
    source = _require(envelope, "source")
    subject = _require(envelope, "subject")
    return Envelope(data=envelope.data, attributes={"source": subject, "subject": source})
