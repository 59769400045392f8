"""Redis connection and the prediction queues."""

from __future__ import annotations

import logging
import os
from typing import Any

import redis

log = logging.getLogger(__name__)

QUEUE_GPT = "label-platform-queue-gpt"
QUEUE_CLAUDE = "label-platform-queue-claude"
QUEUE_GEMINI = "label-platform-queue-gemini"
QUEUE_RESULT = "label-platform-queue-result"
QUEUES = (QUEUE_GPT, QUEUE_CLAUDE, QUEUE_GEMINI, QUEUE_RESULT)

_ENV_NAMES = ("REDIS_HOST", "REDIS_PASSWORD")


def get_env(key: str, fallback: str) -> str:
    """Return the environment value, or the fallback when unset or empty."""
    return os.environ.get(key) or fallback


def _client_from_env() -> redis.Redis:
    host_var, credential_var = _ENV_NAMES
    host, _, port = get_env(host_var, "localhost:6379").rpartition(":")
    password = os.environ.get(credential_var) or None
    return redis.Redis(
        host=host or "localhost",
        port=int(port or 6379),
        password=password,
        db=0,
    )


def new_redis_connection(client: Any = None) -> Any:
    """Check the connection and make sure every queue exists."""
    client = _client_from_env() if client is None else client
    try:
        client.ping()
    except redis.exceptions.RedisError as exc:
        raise ConnectionError(f"failed to connect to Redis: {exc}") from exc
    for queue in QUEUES:
        try:
            client.rpush(queue, "__init__")
        except redis.exceptions.RedisError as exc:
            raise ConnectionError(f"failed to create queue {queue}: {exc}") from exc
        client.lpop(queue)
    log.info("[Redis] Connected and initialized queues: %s", list(QUEUES))
    return client