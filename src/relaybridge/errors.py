from __future__ import annotations


class RelayError(Exception):
    """Base class for relay failures."""


class ConfigError(RelayError):
    """Missing or invalid startup configuration. Fatal."""


class ParseError(RelayError):
    """Request body is not a valid push request."""


class MalformedEnvelope(RelayError):
    """Envelope lacks a non-empty source or subject attribute."""


class DeliveryError(RelayError):
    """Publishing the outbound envelope failed.

    ``kind`` is a short machine-readable label (``timeout``, ``unavailable``,
    ``rejected``, ...). ``retryable`` tells whether a redelivery of the inbound
    message has a chance of succeeding; it does not change the HTTP status.
    """

    def __init__(self, message: str, kind: str = "delivery_failed", retryable: bool = False):
        super().__init__(message)
        self.kind = kind
        self.retryable = bool(retryable)
