from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from surveyform.models.errors import (
    RequiredFieldMissing,
    ResponseValidationFailed,
    SurveyValidationError,
)
from surveyform.models.survey import ANONYMOUS, Survey, SurveyResponse, join_options, utcnow
from surveyform.services.survey_database import SurveyRepository

logger = logging.getLogger(__name__)


class SubmissionStatus(str, Enum):
    """How a successful submission was handled."""

    PERSISTED = "persisted"
    SIMULATED = "simulated"


@dataclass(frozen=True)
class SubmissionResult:
    status: SubmissionStatus
    response: SurveyResponse
    response_id: Optional[str] = None

    @property
    def persisted(self) -> bool:
        return self.status is SubmissionStatus.PERSISTED


def normalize_answers(survey: Survey, submitted: Optional[Mapping[Any, Any]]) -> Dict[int, str]:
    """Coerce a form payload into ``{question_index: answer_text}``.

    Keys may be ints or numeric strings. Multi-select values (lists or tuples)
    are joined with ``,`` in selection order. ``None`` values count as absent
    and indices outside the survey are dropped.
    """

    if submitted is None:
        return {}
    if not isinstance(submitted, Mapping):
        raise SurveyValidationError("Answers must be a mapping of question index to answer")

    total = len(survey.questions)
    answers: Dict[int, str] = {}
    for raw_key, raw_value in submitted.items():
        index = _parse_index(raw_key)
        if not 0 <= index < total:
            logger.debug("Ignoring answer for unknown question index %s on survey %s", index, survey.id)
            continue
        if raw_value is None:
            continue
        if isinstance(raw_value, (list, tuple)):
            answers[index] = join_options(str(item) for item in raw_value)
        else:
            answers[index] = str(raw_value)
    return dict(sorted(answers.items()))


def find_missing_required(survey: Survey, answers: Mapping[int, str]) -> List[RequiredFieldMissing]:
    """Return every required question without a non-blank answer, in order."""

    return [
        RequiredFieldMissing(index)
        for index, question in enumerate(survey.questions)
        if question.required and not (answers.get(index) or "").strip()
    ]


class ResponseCollector:
    """Validate a respondent's answers and hand valid responses to storage.

    All required-field violations are gathered before failing so the form can
    show every error at once.
    """

    def __init__(self, repository: SurveyRepository, *, clock: Callable[[], Any] = utcnow) -> None:
        self._repository = repository
        self._clock = clock

    def collect(
        self,
        survey: Survey,
        submitted_answers: Optional[Mapping[Any, Any]],
        respondent_email: Optional[str] = None,
    ) -> SubmissionResult:
        answers = normalize_answers(survey, submitted_answers)

        violations = find_missing_required(survey, answers)
        if violations:
            raise ResponseValidationFailed(violations)

        email = respondent_email.strip() if isinstance(respondent_email, str) else ""
        response = SurveyResponse(
            survey_id=survey.id,
            answers=answers,
            respondent_email=email or ANONYMOUS,
            submitted_at=self._clock(),
        )

        if survey.is_sample:
            logger.info("Simulated submission for sample survey %s", survey.id)
            return SubmissionResult(status=SubmissionStatus.SIMULATED, response=response)

        response_id = self._repository.append_response(survey.id, response)
        return SubmissionResult(
            status=SubmissionStatus.PERSISTED,
            response=response,
            response_id=response_id,
        )


def _parse_index(raw_key: Any) -> int:
    if isinstance(raw_key, bool):
        raise SurveyValidationError(f"Invalid question index: {raw_key!r}")
    try:
        return int(raw_key)
    except (TypeError, ValueError) as exc:
        raise SurveyValidationError(f"Invalid question index: {raw_key!r}") from exc


__all__ = [
    "ResponseCollector",
    "SubmissionResult",
    "SubmissionStatus",
    "find_missing_required",
    "normalize_answers",
]
