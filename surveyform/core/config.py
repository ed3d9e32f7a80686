from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

STORE_MONGO = "mongo"
STORE_MEMORY = "memory"
_STORE_KINDS = {STORE_MONGO, STORE_MEMORY}


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _int_setting(name: str, default: int) -> int:
    raw = _strip_or_none(os.getenv(name))
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def _bool_setting(name: str, default: bool) -> bool:
    raw = _strip_or_none(os.getenv(name))
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class MongoSettings:
    uri: Optional[str]
    database: str
    timeout_ms: int


class Settings:

    def __init__(self) -> None:
        mongo_uri = _strip_or_none(os.getenv("MONGODB_URI"))
        self.mongo = MongoSettings(
            uri=mongo_uri,
            database=_strip_or_none(os.getenv("MONGODB_DATABASE")) or "surveyform",
            timeout_ms=_int_setting("MONGODB_TIMEOUT_MS", 5000),
        )

        store = (_strip_or_none(os.getenv("SURVEY_STORE")) or (STORE_MONGO if mongo_uri else STORE_MEMORY)).lower()
        if store not in _STORE_KINDS:
            raise RuntimeError(f"SURVEY_STORE must be one of {sorted(_STORE_KINDS)}, got {store!r}")
        if store == STORE_MONGO and not mongo_uri:
            raise RuntimeError("SURVEY_STORE=mongo requires MONGODB_URI in environment or .env file.")
        self.survey_store = store

        self.memory_fallback = _bool_setting("SURVEY_MEMORY_FALLBACK", True)
        self.session_ttl_seconds = _int_setting("SESSION_TTL_SECONDS", 86400)
        self.password_min_length = _int_setting("PASSWORD_MIN_LENGTH", 6)
        self.log_level = (_strip_or_none(os.getenv("LOG_LEVEL")) or "INFO").upper()


def load_settings() -> Settings:
    """Build a fresh settings object from the current environment."""

    return Settings()


settings = Settings()
