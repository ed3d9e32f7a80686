from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure

from surveyform.core.config import MongoSettings, settings
from surveyform.models.errors import PersistenceUnavailable

logger = logging.getLogger(__name__)

_CLIENT: Optional[MongoClient] = None
_CLIENT_LOCK = threading.Lock()


def create_client(mongo: MongoSettings) -> MongoClient:
    """Build a client with the pool and timeout limits used by the app.

    ``MongoClient`` connects lazily, so an unreachable server surfaces on the
    first operation rather than here.
    """

    if not mongo.uri:
        raise RuntimeError("MONGODB_URI is not configured")
    return MongoClient(
        mongo.uri,
        serverSelectionTimeoutMS=mongo.timeout_ms,
        connectTimeoutMS=mongo.timeout_ms,
        socketTimeoutMS=mongo.timeout_ms * 2,
        maxPoolSize=10,
        minPoolSize=1,
        maxIdleTimeMS=30000,
    )


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate an unreachable document store into ``PersistenceUnavailable``."""

    try:
        yield
    except ConnectionFailure as exc:
        logger.error("Document store unavailable during %s: %s", operation, exc)
        raise PersistenceUnavailable(f"Document store unavailable during {operation}") from exc


def get_database() -> Database:
    """Return the shared application database handle."""

    global _CLIENT
    if _CLIENT is None:
        with _CLIENT_LOCK:
            if _CLIENT is None:
                logger.info("Creating MongoDB client for database %s", settings.mongo.database)
                _CLIENT = create_client(settings.mongo)
    return _CLIENT[settings.mongo.database]


__all__ = ["create_client", "get_database", "store_errors"]
