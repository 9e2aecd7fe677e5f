from __future__ import annotations

import sys

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from relaybridge import __version__
from relaybridge.config import Settings, load_settings
from relaybridge.delivery import DeliveryClient, PubSubDeliveryClient, create_delivery_client
from relaybridge.errors import ConfigError, DeliveryError, MalformedEnvelope, ParseError
from relaybridge.relay import RelayHandler, client_error_response, delivery_error_response
from relaybridge.utils.logger_util import get_logger

logger = get_logger(__name__)

HEALTH_BODY = "All good!"


def build_delivery_client(settings: Settings) -> DeliveryClient:
    if settings.delivery_client == "pubsub":
        client = create_delivery_client("pubsub", project_id=settings.project_id, timeout=settings.publish_timeout)
    elif settings.delivery_client == "remote":
        client = create_delivery_client("remote", endpoint=settings.remote_url, timeout=settings.publish_timeout)
    else:
        client = create_delivery_client(settings.delivery_client)
    if isinstance(client, PubSubDeliveryClient):
        # resolve now so a bad topic fails at startup, not on the first request
        logger.info("publishing to %s", client.topic_path(settings.outgoing_topic))
    return client


def create_app(settings: Settings | None = None, delivery_client: DeliveryClient | None = None) -> FastAPI:
    """Build the relay application.

    Settings are loaded from the environment when not given; the delivery
    client is built from settings when not given. Raises ConfigError when the
    configuration is unusable.
    """
    if settings is None:
        settings = load_settings()
    if delivery_client is None:
        delivery_client = build_delivery_client(settings)

    app = FastAPI(title="relaybridge", version=__version__)
    handler = RelayHandler(delivery_client, settings.outgoing_topic, publish_timeout=settings.publish_timeout)
    app.state.settings = settings
    app.state.relay = handler

    @app.exception_handler(ParseError)
    @app.exception_handler(MalformedEnvelope)
    async def _client_error(request: Request, exc: ParseError | MalformedEnvelope):
        return client_error_response(exc)

    @app.exception_handler(DeliveryError)
    async def _delivery_error(request: Request, exc: DeliveryError):
        return delivery_error_response(exc)

    @app.get("/", response_class=PlainTextResponse)
    async def health():
        # liveness only; never touches the delivery client
        return HEALTH_BODY

    @app.post("/")
    async def relay(request: Request):
        return await handler.handle(await request.body())

    logger.info("relay ready: topic=%s client=%s", settings.outgoing_topic, settings.delivery_client)
    return app


def main() -> None:
    try:
        settings = load_settings()
        app = create_app(settings)
    except ConfigError as e:
        logger.error("refusing to start: %s", e)
        sys.exit(1)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
