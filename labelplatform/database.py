"""PostgreSQL connection set-up from environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from sqlalchemy import URL, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

log = logging.getLogger(__name__)


def build_database_url(env: Mapping[str, str] | None = None) -> URL:
    """Build the database URL from DB_* variables."""
    env = os.environ if env is None else env
    port = env.get("DB_PORT", "")
    ssl_mode = env.get("DB_SSL_MODE", "")
    return URL.create(
        "postgresql",
        username=env.get("DB_USER") or None,
        password=env.get("DB_PASSWORD") or None,
        host=env.get("DB_HOST") or None,
        port=int(port) if port else None,
        database=env.get("DB_NAME") or None,
        query={"sslmode": ssl_mode} if ssl_mode else {},
    )


def new_postgres_connection(env: Mapping[str, str] | None = None) -> Engine:
    """Create an engine and check that the database answers."""
    try:
        engine = create_engine(build_database_url(env))
        with engine.connect():
            pass
    except SQLAlchemyError as exc:
        raise ConnectionError(f"failed to connect to database: {exc}") from exc
    log.info("Successfully connected to PostgreSQL database")
    return engine