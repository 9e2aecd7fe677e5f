from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

import dotenv

from relaybridge.errors import ConfigError

DELIVERY_CLIENTS = ("pubsub", "remote", "mock")


@dataclass(frozen=True)
class Settings:
    outgoing_topic: str
    delivery_client: str = "pubsub"
    project_id: str | None = None
    remote_url: str | None = None
    publish_timeout: float = 10.0
    host: str = "0.0.0.0"
    port: int = 8080


def _positive_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}")
    return value


def _port(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e
    if not 0 < value < 65536:
        raise ConfigError(f"{key} out of range: {value}")
    return value


def load_settings(env: Mapping[str, str] | None = None, dotenv_path: str | None = ".env") -> Settings:
    """Read relay settings once, at startup.

    Values come from ``env`` (``os.environ`` by default, after loading
    ``dotenv_path`` if it exists). Raises ConfigError when the outgoing topic
    is missing or any value is unusable.
    """
    if env is None:
        if dotenv_path:
            dotenv.load_dotenv(dotenv_path)
        env = os.environ

    topic = (env.get("OUTGOING_MESSAGES_TOPIC") or "").strip()
    if not topic:
        raise ConfigError("OUTGOING_MESSAGES_TOPIC is required")

    client = (env.get("DELIVERY_CLIENT") or "pubsub").strip().lower()
    if client not in DELIVERY_CLIENTS:
        raise ConfigError(f"DELIVERY_CLIENT must be one of {', '.join(DELIVERY_CLIENTS)}, got {client!r}")

    project_id = env.get("GOOGLE_CLOUD_PROJECT") or None
    if client == "pubsub" and not topic.startswith("projects/") and not project_id:
        raise ConfigError("GOOGLE_CLOUD_PROJECT is required when OUTGOING_MESSAGES_TOPIC is not a full topic path")

    remote_url = env.get("REMOTE_DELIVERY_URL") or None
    if client == "remote" and not remote_url:
        raise ConfigError("REMOTE_DELIVERY_URL is required when DELIVERY_CLIENT=remote")

    return Settings(
        outgoing_topic=topic,
        delivery_client=client,
        project_id=project_id,
        remote_url=remote_url,
        publish_timeout=_positive_float(env, "PUBLISH_TIMEOUT_SEC", 10.0),
        host=env.get("RELAY_HOST") or "0.0.0.0",
        port=_port(env, "PORT", 8080),
    )
