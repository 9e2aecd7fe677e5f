"""Schemas for the relay's wire format and in-process envelope.

Push bodies are validated strictly enough to reject garbage early; attribute
semantics (source/subject) are left to the transformer.
"""

from .envelope import DeliveryResult, Envelope
from .push import PushMessage, PushRequest, encode_push_request, parse_push_request

__all__ = [
    "DeliveryResult",
    "Envelope",
    "PushMessage",
    "PushRequest",
    "encode_push_request",
    "parse_push_request",
]
