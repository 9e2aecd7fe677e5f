from __future__ import annotations

import base64
import binascii
import json
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from relaybridge.errors import ParseError
from relaybridge.schemas.envelope import Envelope


class PushMessage(BaseModel):
    """The ``message`` object of a pub/sub push request.

    ``data`` arrives base64-encoded. It may be the empty string but must be
    present.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    data: str
    attributes: Dict[str, str] = Field(default_factory=dict)
    message_id: Optional[str] = Field(None, alias="messageId")
    publish_time: Optional[str] = Field(None, alias="publishTime")

    @field_validator("attributes", mode="before")
    def _null_attributes(cls, v):
        # some publishers send "attributes": null for attribute-less messages
        return {} if v is None else v

    def decoded_data(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ParseError(f"message.data is not valid base64: {e}") from e


class PushRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: PushMessage
    subscription: Optional[str] = None


def encode_push_request(envelope: Envelope, subscription: str | None = None) -> dict:
    """Build a push-format body for ``envelope`` (the inverse of parse_push_request)."""
    body = {
        "message": {
            "data": base64.b64encode(envelope.data).decode("ascii"),
            "attributes": dict(envelope.attributes),
        },
    }
    if subscription is not None:
        body["subscription"] = subscription
    return body


def parse_push_request(raw: bytes | str) -> Envelope:
    """Turn a raw push body into an Envelope.

    Raises ParseError when the body is not JSON, does not match the push
    schema, or carries undecodable data.
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ParseError(f"body is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ParseError("body must be a JSON object")

    try:
        req = PushRequest.model_validate(payload)
    except ValidationError as e:
        raise ParseError(f"body does not match push schema: {e.error_count()} error(s)") from e

    return Envelope(data=req.message.decoded_data(), attributes=req.message.attributes)
