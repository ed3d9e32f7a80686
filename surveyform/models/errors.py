from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple


class SurveyFormError(Exception):
    """Base class for every error raised by the survey core."""

    code = "survey_error"


class SurveyValidationError(SurveyFormError):
    """Caller-correctable input error. Never retried automatically."""

    code = "validation_error"


class MissingTitle(SurveyValidationError):
    code = "missing_title"

    def __init__(self) -> None:
        super().__init__("Survey title is required")


class NoQuestions(SurveyValidationError):
    code = "no_questions"

    def __init__(self) -> None:
        super().__init__("At least one question is required")


class EmptyQuestionPrompt(SurveyValidationError):
    code = "empty_question_prompt"

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Question {index + 1} text is required")


class InvalidQuestion(SurveyValidationError):
    code = "invalid_question"

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Question {index + 1} is invalid: {reason}")


@dataclass(frozen=True)
class RequiredFieldMissing:
    """A required question left unanswered on a submission."""

    index: int

    @property
    def message(self) -> str:
        return "This field is required"


class ResponseValidationFailed(SurveyValidationError):
    """Every required-field violation of one submission, in question order."""

    code = "validation_failed"

    def __init__(self, violations: Iterable[RequiredFieldMissing]) -> None:
        self.violations: Tuple[RequiredFieldMissing, ...] = tuple(violations)
        indices = ", ".join(str(v.index + 1) for v in self.violations)
        super().__init__(f"Required questions left unanswered: {indices}")

    @property
    def indices(self) -> Tuple[int, ...]:
        return tuple(v.index for v in self.violations)


class RegistrationError(SurveyValidationError):
    code = "registration_error"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class NotFound(SurveyFormError):
    code = "not_found"


class SurveyNotFound(NotFound):

    def __init__(self, survey_id: str) -> None:
        self.survey_id = survey_id
        super().__init__(f"Survey not found: {survey_id}")


class CorruptSurvey(NotFound):
    """A stored survey document that no longer parses as a survey."""

    code = "corrupt_survey"

    def __init__(self, survey_id: str, reason: str) -> None:
        self.survey_id = survey_id
        self.reason = reason
        super().__init__(f"Survey {survey_id} is unreadable: {reason}")


class PersistenceUnavailable(SurveyFormError):
    """The document store could not be reached."""

    code = "persistence_unavailable"


class AuthenticationError(SurveyFormError):
    code = "authentication_failed"


__all__ = [
    "AuthenticationError",
    "CorruptSurvey",
    "EmptyQuestionPrompt",
    "InvalidQuestion",
    "MissingTitle",
    "NoQuestions",
    "NotFound",
    "PersistenceUnavailable",
    "RegistrationError",
    "RequiredFieldMissing",
    "ResponseValidationFailed",
    "SurveyFormError",
    "SurveyNotFound",
    "SurveyValidationError",
]
