from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from surveyform.core.config import STORE_MONGO, settings
from surveyform.models.errors import PersistenceUnavailable, SurveyNotFound
from surveyform.models.survey import Survey
from surveyform.services.auth_service import (
    AuthService,
    InMemoryCredentialStore,
    MongoCredentialStore,
    SessionStore,
)
from surveyform.services.mongo_client import get_database
from surveyform.services.response_collector import ResponseCollector, SubmissionResult
from surveyform.services.sample_surveys import get_sample_survey, is_sample_id, list_sample_surveys
from surveyform.services.survey_database import (
    InMemorySurveyRepository,
    SurveyRepository,
    get_fallback_repository,
    get_survey_repository,
    is_local_id,
)
from surveyform.services.survey_validation import validate_draft, validate_patch

logger = logging.getLogger(__name__)


class SurveyService:
    """Operations the presentation layer calls.

    Authoring (create, update, delete) requires a session token issued by
    :class:`AuthService`. Reading surveys and submitting responses is public.
    Every failure is raised as a :class:`~surveyform.models.errors.SurveyFormError`
    subclass whose ``code`` the caller maps to a message or status.
    """

    def __init__(
        self,
        repository: SurveyRepository,
        auth: AuthService,
        *,
        fallback: Optional[InMemorySurveyRepository] = None,
    ) -> None:
        self._repository = repository
        self._fallback = fallback
        self._auth = auth

    @property
    def auth(self) -> AuthService:
        return self._auth

    def create_survey(self, token: Optional[str], payload: Mapping[str, Any]) -> str:
        """Validate a draft and store it, returning the new survey id.

        When the document store is unreachable and a fallback store is
        configured, the draft goes to the fallback store instead.
        """

        session = self._auth.require_session(token)
        draft = validate_draft(
            payload.get("title"),
            payload.get("description"),
            payload.get("questions"),
            payload.get("createdBy") or session.email,
        )
        try:
            return self._repository.create_survey(draft)
        except PersistenceUnavailable:
            if self._fallback is None:
                raise
            logger.warning("Document store unavailable; storing survey %r in memory", draft.title)
            return self._fallback.create_survey(draft)

    def list_surveys(self, *, include_samples: bool = True) -> List[Survey]:
        """Return stored surveys, then fallback-store surveys, then samples."""

        surveys: List[Survey] = []
        try:
            surveys.extend(self._repository.list_surveys())
        except PersistenceUnavailable:
            if self._fallback is None:
                raise
            logger.warning("Document store unavailable; listing in-memory surveys only")
        if self._fallback is not None:
            surveys.extend(self._fallback.list_surveys())
        if include_samples:
            surveys.extend(list_sample_surveys())
        return surveys

    def get_survey(self, survey_id: str) -> Survey:
        if is_sample_id(survey_id):
            sample = get_sample_survey(survey_id)
            if sample is None:
                raise SurveyNotFound(survey_id)
            return sample
        return self._repository_for(survey_id).get_survey(survey_id)

    def update_survey(self, token: Optional[str], survey_id: str, patch: Mapping[str, Any]) -> None:
        self._auth.require_session(token)
        if is_sample_id(survey_id):
            raise SurveyNotFound(survey_id)
        validated = validate_patch(patch)
        self._repository_for(survey_id).update_survey(survey_id, validated)

    def delete_survey(self, token: Optional[str], survey_id: str) -> None:
        self._auth.require_session(token)
        if is_sample_id(survey_id):
            raise SurveyNotFound(survey_id)
        self._repository_for(survey_id).delete_survey(survey_id)

    def submit_response(
        self,
        survey_id: str,
        answers: Optional[Mapping[Any, Any]],
        respondent_email: Optional[str] = None,
    ) -> SubmissionResult:
        survey = self.get_survey(survey_id)
        collector = ResponseCollector(self._repository_for(survey.id))
        return collector.collect(survey, answers, respondent_email)

    def count_responses(self, survey_id: str) -> int:
        if is_sample_id(survey_id):
            return 0
        return len(self._repository_for(survey_id).list_responses(survey_id))

    def _repository_for(self, survey_id: str) -> SurveyRepository:
        if self._fallback is not None and is_local_id(survey_id):
            return self._fallback
        return self._repository


def build_survey_service() -> SurveyService:
    """Wire the service from ``settings``."""

    if settings.survey_store == STORE_MONGO:
        credentials = MongoCredentialStore.from_database(get_database())
    else:
        credentials = InMemoryCredentialStore()

    auth = AuthService(
        credentials,
        SessionStore(settings.session_ttl_seconds),
        password_min_length=settings.password_min_length,
    )
    return SurveyService(get_survey_repository(), auth, fallback=get_fallback_repository())


__all__ = ["SurveyService", "build_survey_service"]
