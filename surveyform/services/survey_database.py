from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Dict, List, Optional, Protocol

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import ValidationError

from surveyform.core.config import STORE_MONGO, settings
from surveyform.models.errors import CorruptSurvey, SurveyNotFound
from surveyform.models.survey import Survey, SurveyDraft, SurveyResponse
from surveyform.services.mongo_client import get_database, store_errors
from surveyform.services.survey_validation import SurveyPatch

logger = logging.getLogger(__name__)

SURVEYS_COLLECTION = "surveys"
RESPONSES_COLLECTION = "responses"
LOCAL_ID_PREFIX = "local-"


class SurveyRepository(Protocol):
    """Persistence operations for surveys and their responses."""

    def create_survey(self, draft: SurveyDraft) -> str: ...

    def get_survey(self, survey_id: str) -> Survey: ...

    def list_surveys(self) -> List[Survey]: ...

    def update_survey(self, survey_id: str, patch: SurveyPatch) -> None: ...

    def delete_survey(self, survey_id: str) -> None: ...

    def append_response(self, survey_id: str, response: SurveyResponse) -> str: ...

    def list_responses(self, survey_id: str) -> List[SurveyResponse]: ...


class MongoSurveyRepository(SurveyRepository):
    """Repository backed by the ``surveys`` and ``responses`` collections."""

    def __init__(self, surveys: Any, responses: Any) -> None:
        self._surveys = surveys
        self._responses = responses

    @classmethod
    def from_database(cls, database: Any) -> "MongoSurveyRepository":
        return cls(database[SURVEYS_COLLECTION], database[RESPONSES_COLLECTION])

    def create_survey(self, draft: SurveyDraft) -> str:
        with store_errors("create_survey"):
            result = self._surveys.insert_one(draft.to_document())
        survey_id = str(result.inserted_id)
        logger.info("Created survey %s with %d questions", survey_id, len(draft.questions))
        return survey_id

    def get_survey(self, survey_id: str) -> Survey:
        object_id = _object_id(survey_id)
        with store_errors("get_survey"):
            document = self._surveys.find_one({"_id": object_id})
        if document is None:
            raise SurveyNotFound(survey_id)
        return _survey_from_document(survey_id, document)

    def list_surveys(self) -> List[Survey]:
        with store_errors("list_surveys"):
            documents = list(self._surveys.find({}))
        surveys: List[Survey] = []
        for document in documents:
            try:
                surveys.append(_survey_from_document(str(document.get("_id")), document))
            except CorruptSurvey as exc:
                logger.warning("Skipping unreadable survey %s: %s", exc.survey_id, exc.reason)
        return surveys

    def update_survey(self, survey_id: str, patch: SurveyPatch) -> None:
        object_id = _object_id(survey_id)
        with store_errors("update_survey"):
            result = self._surveys.update_one({"_id": object_id}, {"$set": patch.to_document()})
        if result.matched_count == 0:
            raise SurveyNotFound(survey_id)
        logger.info("Updated survey %s", survey_id)

    def delete_survey(self, survey_id: str) -> None:
        object_id = _object_id(survey_id)
        with store_errors("delete_survey"):
            result = self._surveys.delete_one({"_id": object_id})
        if result.deleted_count == 0:
            raise SurveyNotFound(survey_id)
        logger.info("Deleted survey %s", survey_id)

    def append_response(self, survey_id: str, response: SurveyResponse) -> str:
        object_id = _object_id(survey_id)
        with store_errors("append_response"):
            parent = self._surveys.find_one({"_id": object_id}, {"_id": 1, "isSample": 1})
            if parent is None or parent.get("isSample"):
                raise SurveyNotFound(survey_id)
            result = self._responses.insert_one(response.to_document())
        response_id = str(result.inserted_id)
        logger.info("Stored response %s for survey %s", response_id, survey_id)
        return response_id

    def list_responses(self, survey_id: str) -> List[SurveyResponse]:
        with store_errors("list_responses"):
            documents = list(self._responses.find({"surveyId": survey_id}))
        return [SurveyResponse.from_document(document) for document in documents]


class InMemorySurveyRepository(SurveyRepository):
    """Process-local store for local and demo use.

    Contents are lost on restart. Identifiers are ``local-<n>`` and never
    overlap with document-store identifiers.
    """

    def __init__(self) -> None:
        self._surveys: Dict[str, Survey] = {}
        self._responses: List[SurveyResponse] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create_survey(self, draft: SurveyDraft) -> str:
        with self._lock:
            survey_id = f"{LOCAL_ID_PREFIX}{next(self._ids)}"
            self._surveys[survey_id] = Survey.from_draft(survey_id, draft)
        logger.info("Created in-memory survey %s", survey_id)
        return survey_id

    def get_survey(self, survey_id: str) -> Survey:
        with self._lock:
            survey = self._surveys.get(survey_id)
        if survey is None:
            raise SurveyNotFound(survey_id)
        return survey

    def list_surveys(self) -> List[Survey]:
        with self._lock:
            return list(self._surveys.values())

    def update_survey(self, survey_id: str, patch: SurveyPatch) -> None:
        with self._lock:
            survey = self._surveys.get(survey_id)
            if survey is None:
                raise SurveyNotFound(survey_id)
            self._surveys[survey_id] = patch.apply(survey)

    def delete_survey(self, survey_id: str) -> None:
        with self._lock:
            if self._surveys.pop(survey_id, None) is None:
                raise SurveyNotFound(survey_id)

    def append_response(self, survey_id: str, response: SurveyResponse) -> str:
        with self._lock:
            survey = self._surveys.get(survey_id)
            if survey is None or survey.is_sample:
                raise SurveyNotFound(survey_id)
            self._responses.append(response)
            response_id = f"{survey_id}/response-{len(self._responses)}"
        logger.info("Stored in-memory response %s", response_id)
        return response_id

    def list_responses(self, survey_id: str) -> List[SurveyResponse]:
        with self._lock:
            return [response for response in self._responses if response.survey_id == survey_id]


def _object_id(survey_id: str) -> ObjectId:
    try:
        return ObjectId(survey_id)
    except (InvalidId, TypeError) as exc:
        raise SurveyNotFound(survey_id) from exc


def _survey_from_document(survey_id: str, document: Dict[str, Any]) -> Survey:
    try:
        return Survey.from_document(document)
    except ValidationError as exc:
        errors = exc.errors()
        reason = errors[0]["msg"] if errors else str(exc)
        raise CorruptSurvey(survey_id, reason) from exc


def is_local_id(survey_id: str) -> bool:
    return survey_id.startswith(LOCAL_ID_PREFIX)


_REPOSITORY_INSTANCE: Optional[SurveyRepository] = None
_FALLBACK_INSTANCE: Optional[InMemorySurveyRepository] = None
_REPOSITORY_LOCK = threading.Lock()


def get_survey_repository() -> SurveyRepository:
    """Return the shared primary repository selected by ``SURVEY_STORE``."""

    global _REPOSITORY_INSTANCE
    if _REPOSITORY_INSTANCE is None:
        with _REPOSITORY_LOCK:
            if _REPOSITORY_INSTANCE is None:
                if settings.survey_store == STORE_MONGO:
                    _REPOSITORY_INSTANCE = MongoSurveyRepository.from_database(get_database())
                else:
                    _REPOSITORY_INSTANCE = _get_memory_repository_unlocked()
    return _REPOSITORY_INSTANCE


def get_fallback_repository() -> Optional[InMemorySurveyRepository]:
    """Return the in-memory fallback store, or ``None`` when not applicable.

    There is no fallback when the fallback is disabled or when the primary
    store is already in memory.
    """

    if settings.survey_store != STORE_MONGO or not settings.memory_fallback:
        return None
    with _REPOSITORY_LOCK:
        return _get_memory_repository_unlocked()


def _get_memory_repository_unlocked() -> InMemorySurveyRepository:
    global _FALLBACK_INSTANCE
    if _FALLBACK_INSTANCE is None:
        _FALLBACK_INSTANCE = InMemorySurveyRepository()
    return _FALLBACK_INSTANCE


__all__ = [
    "InMemorySurveyRepository",
    "LOCAL_ID_PREFIX",
    "MongoSurveyRepository",
    "SurveyRepository",
    "get_fallback_repository",
    "get_survey_repository",
    "is_local_id",
]
