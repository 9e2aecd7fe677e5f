from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Envelope(BaseModel):
    """A single relayed message: opaque payload plus string attributes.

    ``data`` is never interpreted. The relay cares about two attributes,
    ``source`` and ``subject``; their presence is checked by the transformer,
    not here, so a parsed-but-incomplete envelope can still be reported as
    malformed.
    """

    model_config = ConfigDict(frozen=True)

    data: bytes = b""
    attributes: Dict[str, str] = Field(default_factory=dict)

    @property
    def source(self) -> Optional[str]:
        return self.attributes.get("source")

    @property
    def subject(self) -> Optional[str]:
        return self.attributes.get("subject")


class DeliveryResult(BaseModel):
    ok: bool
    message_id: Optional[str] = None
    error_kind: Optional[str] = None
    retryable: bool = False

    @classmethod
    def success(cls, message_id: str) -> "DeliveryResult":
        return cls(ok=True, message_id=str(message_id))

    @classmethod
    def failure(cls, error_kind: str, retryable: bool = False) -> "DeliveryResult":
        return cls(ok=False, error_kind=error_kind, retryable=retryable)
