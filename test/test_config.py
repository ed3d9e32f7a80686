from __future__ import annotations

import pytest

from surveyform.core.config import STORE_MEMORY, STORE_MONGO, load_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "MONGODB_URI",
        "MONGODB_DATABASE",
        "MONGODB_TIMEOUT_MS",
        "SURVEY_STORE",
        "SURVEY_MEMORY_FALLBACK",
        "SESSION_TTL_SECONDS",
        "PASSWORD_MIN_LENGTH",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults_without_uri_use_memory_store(clean_env) -> None:
    settings = load_settings()

    assert settings.survey_store == STORE_MEMORY
    assert settings.mongo.database == "surveyform"
    assert settings.mongo.timeout_ms == 5000
    assert settings.memory_fallback is True
    assert settings.password_min_length == 6
    assert settings.log_level == "INFO"


def test_uri_selects_mongo_store(clean_env) -> None:
    clean_env.setenv("MONGODB_URI", "mongodb://localhost:27017")
    clean_env.setenv("SURVEY_MEMORY_FALLBACK", "no")

    settings = load_settings()

    assert settings.survey_store == STORE_MONGO
    assert settings.memory_fallback is False


@pytest.mark.parametrize(
    ("name", "value"),
    [("SURVEY_STORE", "mongo"), ("SURVEY_STORE", "redis"), ("SESSION_TTL_SECONDS", "soon"), ("MONGODB_TIMEOUT_MS", "0")],
)
def test_invalid_settings_fail_fast(clean_env, name, value) -> None:
    clean_env.setenv(name, value)

    with pytest.raises(RuntimeError):
        load_settings()
