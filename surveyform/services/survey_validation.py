from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from surveyform.models.errors import (
    EmptyQuestionPrompt,
    InvalidQuestion,
    MissingTitle,
    NoQuestions,
    SurveyValidationError,
)
from surveyform.models.survey import ANONYMOUS, Question, Survey, SurveyDraft

PATCHABLE_FIELDS = ("title", "description", "questions", "isActive")


def validate_draft(
    title: Any,
    description: Any = None,
    questions: Any = None,
    created_by: Any = None,
) -> SurveyDraft:
    """Validate an authored survey and return the normalized draft.

    Validation is fail-fast: the title is checked first, then the presence of
    questions, then each question in order. The first problem is raised.
    """

    clean_title = _validate_title(title)
    parsed_questions = _validate_questions(questions)

    author = created_by.strip() if isinstance(created_by, str) else ""
    return SurveyDraft(
        title=clean_title,
        description=_normalize_description(description),
        questions=parsed_questions,
        created_by=author or ANONYMOUS,
    )


@dataclass(frozen=True)
class SurveyPatch:
    """A validated partial update. ``None`` means "leave unchanged"."""

    title: Optional[str] = None
    description: Optional[str] = None
    questions: Optional[List[Question]] = None
    is_active: Optional[bool] = None

    def to_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {}
        if self.title is not None:
            document["title"] = self.title
        if self.description is not None:
            document["description"] = self.description
        if self.questions is not None:
            document["questions"] = [question.to_document() for question in self.questions]
        if self.is_active is not None:
            document["isActive"] = self.is_active
        return document

    def apply(self, survey: Survey) -> Survey:
        changes: Dict[str, Any] = {}
        if self.title is not None:
            changes["title"] = self.title
        if self.description is not None:
            changes["description"] = self.description
        if self.questions is not None:
            changes["questions"] = list(self.questions)
        if self.is_active is not None:
            changes["is_active"] = self.is_active
        return survey.model_copy(update=changes)


def validate_patch(patch: Mapping[str, Any]) -> SurveyPatch:
    """Validate an update payload with the same rules used for drafts."""

    if not isinstance(patch, Mapping) or not patch:
        raise SurveyValidationError("Nothing to update")

    unknown = sorted(str(key) for key in patch if key not in PATCHABLE_FIELDS)
    if unknown:
        raise SurveyValidationError(f"Fields cannot be updated: {', '.join(unknown)}")

    title = _validate_title(patch["title"]) if "title" in patch else None
    questions = _validate_questions(patch["questions"]) if "questions" in patch else None
    description = _normalize_description(patch["description"]) if "description" in patch else None

    is_active = None
    if "isActive" in patch:
        if not isinstance(patch["isActive"], bool):
            raise SurveyValidationError("isActive must be a boolean")
        is_active = patch["isActive"]

    return SurveyPatch(title=title, description=description, questions=questions, is_active=is_active)


def _validate_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise MissingTitle()
    return title.strip()


def _normalize_description(description: Any) -> str:
    if description is None:
        return ""
    return str(description)


def _validate_questions(questions: Any) -> List[Question]:
    if not _is_sequence(questions) or len(questions) == 0:
        raise NoQuestions()

    parsed: List[Question] = []
    for index, raw in enumerate(questions):
        parsed.append(_validate_question(index, raw))
    return parsed


def _validate_question(index: int, raw: Any) -> Question:
    if isinstance(raw, Question):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidQuestion(index, "question must be an object")

    prompt = raw.get("question", raw.get("prompt"))
    if not isinstance(prompt, str) or not prompt.strip():
        raise EmptyQuestionPrompt(index)

    try:
        return Question.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "question"
        raise InvalidQuestion(index, f"{location}: {first.get('msg', 'invalid value')}") from exc


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


__all__ = ["PATCHABLE_FIELDS", "SurveyPatch", "validate_draft", "validate_patch"]
