from __future__ import annotations

import asyncio

from fastapi import Response
from fastapi.responses import JSONResponse, PlainTextResponse

from relaybridge.delivery import DeliveryClient
from relaybridge.errors import DeliveryError, MalformedEnvelope, ParseError
from relaybridge.schemas.envelope import DeliveryResult, Envelope
from relaybridge.schemas.push import parse_push_request
from relaybridge.transform import transform
from relaybridge.utils.logger_util import get_logger

logger = get_logger(__name__)

PROCESSED_BODY = "Message processed"


class RelayHandler:
    """Receive a push body, swap its attributes and republish it.

    One publish attempt per request that passes validation; no local retry.
    Upstream at-least-once delivery is the retry layer, so duplicates in
    produce duplicates out.
    """

    def __init__(self, client: DeliveryClient, topic: str, publish_timeout: float = 10.0):
        self.client = client
        self.topic = topic
        self.publish_timeout = float(publish_timeout)

    def prepare(self, raw: bytes | str) -> Envelope:
        """Parse and transform; raises ParseError or MalformedEnvelope."""
        inbound = parse_push_request(raw)
        logger.debug("stage=validated bytes=%s", len(inbound.data))
        outbound = transform(inbound)
        logger.debug("stage=transformed source=%s subject=%s", outbound.source, outbound.subject)
        return outbound

    async def deliver(self, envelope: Envelope) -> DeliveryResult:
        """Publish off the event loop, bounded by publish_timeout.

        Any failure of the client surfaces as DeliveryError. A timed-out
        publish keeps running in its worker thread; only the request stops
        waiting for it.
        """
        try:
            message_id = await asyncio.wait_for(
                asyncio.to_thread(self.client.publish, self.topic, envelope),
                timeout=self.publish_timeout,
            )
        except asyncio.TimeoutError as e:
            raise DeliveryError(
                f"publish to {self.topic} did not complete within {self.publish_timeout}s",
                kind="timeout",
                retryable=True,
            ) from e
        except DeliveryError:
            raise
        except Exception as e:
            # unclassified client failure; let upstream redelivery try again
            raise DeliveryError(f"publish to {self.topic} failed: {e}", kind=type(e).__name__, retryable=True) from e
        return DeliveryResult.success(message_id)

    async def handle(self, raw: bytes | str) -> Response:
        """Relay one push body.

        Raises ParseError/MalformedEnvelope for bad input and DeliveryError
        when publishing fails; the app's exception handlers turn those into
        400 and 502 responses.
        """
        logger.debug("stage=received bytes=%s", len(raw))
        try:
            outbound = self.prepare(raw)
        except (ParseError, MalformedEnvelope) as e:
            logger.warning("stage=rejected %s: %s", type(e).__name__, e)
            raise

        try:
            result = await self.deliver(outbound)
        except DeliveryError as e:
            logger.warning("stage=publish_failed topic=%s kind=%s retryable=%s: %s", self.topic, e.kind, e.retryable, e)
            raise

        logger.info("stage=published topic=%s message_id=%s", self.topic, result.message_id)
        return PlainTextResponse(PROCESSED_BODY)


_CLIENT_ERROR_KINDS = {ParseError: "parse_error", MalformedEnvelope: "malformed_envelope"}


def client_error_response(exc: ParseError | MalformedEnvelope) -> JSONResponse:
    return JSONResponse({"error": _CLIENT_ERROR_KINDS[type(exc)], "detail": str(exc)}, status_code=400)


def delivery_error_response(exc: DeliveryError) -> JSONResponse:
    result = DeliveryResult.failure(exc.kind, retryable=exc.retryable)
    return JSONResponse(
        {"error": result.error_kind, "detail": str(exc), "retryable": result.retryable},
        status_code=502,
    )
