from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Mapping, Union

from pydantic import BaseModel, Field, field_validator, model_validator

QuestionType = Literal["text", "textarea", "radio", "checkbox", "email", "number"]

QUESTION_TYPES: tuple[str, ...] = ("text", "textarea", "radio", "checkbox", "email", "number")
CHOICE_TYPES = frozenset({"radio", "checkbox"})
OPTION_SEPARATOR = ","
ANONYMOUS = "anonymous"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_options(value: Union[str, Iterable[Any], None]) -> List[str]:
    """Turn the external comma-joined options field into an ordered list.

    Each segment is trimmed. Only a blank or absent field yields an empty
    list; empty segments inside a non-blank field are kept.
    """

    if value is None:
        return []
    if isinstance(value, str):
        if not value.strip():
            return []
        return [segment.strip() for segment in value.split(OPTION_SEPARATOR)]
    return [str(item).strip() for item in value]


def join_options(options: Iterable[str]) -> str:
    """Serialize options (or a checkbox selection) to the delimited external form."""

    return OPTION_SEPARATOR.join(options)


def split_selection(answer: str | None) -> List[str]:
    """Split a stored checkbox answer back into the selected option labels."""

    if not answer:
        return []
    return [label.strip() for label in answer.split(OPTION_SEPARATOR)]


class Question(BaseModel):
    """A single survey item.

    ``prompt`` is exposed as ``question`` in stored documents and form
    payloads; ``options`` is a list internally and a comma-joined string
    externally.
    """

    type: QuestionType = "text"
    prompt: str = Field(alias="question")
    options: List[str] = Field(default_factory=list)
    required: bool = False

    model_config = {"extra": "ignore", "populate_by_name": True, "frozen": True}

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if value is None:
            return "text"
        if isinstance(value, str):
            return value.strip().lower() or "text"
        return value

    @field_validator("prompt", mode="before")
    @classmethod
    def _strip_prompt(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("options", mode="before")
    @classmethod
    def _parse_options(cls, value: Any) -> List[str]:
        return parse_options(value)

    @model_validator(mode="after")
    def _ensure_prompt(self) -> "Question":
        if not self.prompt:
            raise ValueError("question text cannot be empty")
        return self

    @property
    def has_choices(self) -> bool:
        return self.type in CHOICE_TYPES

    def to_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {
            "type": self.type,
            "question": self.prompt,
            "required": self.required,
        }
        if self.has_choices:
            document["options"] = join_options(self.options)
        return document


def option_list(question: Union[Question, Mapping[str, Any]]) -> List[str]:
    """Return the ordered choices declared on a question.

    Accepts either a parsed :class:`Question` or a raw stored document. An
    absent ``options`` field yields an empty list, never an error.
    """

    if isinstance(question, Question):
        return list(question.options)
    return parse_options(question.get("options"))


class SurveyDraft(BaseModel):
    """A validated, normalized survey ready for repository insertion."""

    title: str
    description: str = ""
    questions: List[Question]
    created_by: str = ANONYMOUS
    is_active: bool = True
    responses: List[Any] = Field(default_factory=list)

    model_config = {"extra": "forbid", "frozen": True}

    def to_document(self, created_at: datetime | None = None) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "questions": [question.to_document() for question in self.questions],
            "createdBy": self.created_by,
            "createdAt": created_at or utcnow(),
            "isActive": self.is_active,
            "responses": list(self.responses),
        }


class Survey(BaseModel):
    """A persisted (or built-in sample) survey."""

    id: str
    title: str
    description: str = ""
    questions: List[Question]
    created_by: str = Field(default=ANONYMOUS, alias="createdBy")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    is_active: bool = Field(default=True, alias="isActive")
    is_sample: bool = Field(default=False, alias="isSample")

    model_config = {"extra": "ignore", "populate_by_name": True, "frozen": True}

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "Survey":
        payload = {key: value for key, value in document.items() if value is not None}
        raw_id = payload.pop("_id", None)
        if raw_id is not None:
            payload["id"] = str(raw_id)
        return cls.model_validate(payload)

    @classmethod
    def from_draft(cls, survey_id: str, draft: SurveyDraft, created_at: datetime | None = None) -> "Survey":
        return cls(
            id=survey_id,
            title=draft.title,
            description=draft.description,
            questions=list(draft.questions),
            created_by=draft.created_by,
            created_at=created_at or utcnow(),
            is_active=draft.is_active,
        )


class SurveyResponse(BaseModel):
    """One respondent's submission, keyed by 0-based question index."""

    survey_id: str
    answers: Dict[int, str]
    respondent_email: str = ANONYMOUS
    submitted_at: datetime = Field(default_factory=utcnow)

    model_config = {"extra": "forbid", "frozen": True}

    def to_document(self) -> Dict[str, Any]:
        return {
            "surveyId": self.survey_id,
            "answers": {str(index): value for index, value in self.answers.items()},
            "respondentEmail": self.respondent_email,
            "submittedAt": self.submitted_at,
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "SurveyResponse":
        answers: Dict[int, str] = {}
        for key, value in (document.get("answers") or {}).items():
            try:
                answers[int(key)] = "" if value is None else str(value)
            except (TypeError, ValueError):
                continue
        return cls(
            survey_id=str(document.get("surveyId", "")),
            answers=answers,
            respondent_email=document.get("respondentEmail") or ANONYMOUS,
            submitted_at=document.get("submittedAt") or utcnow(),
        )


__all__ = [
    "ANONYMOUS",
    "CHOICE_TYPES",
    "QUESTION_TYPES",
    "Question",
    "QuestionType",
    "Survey",
    "SurveyDraft",
    "SurveyResponse",
    "join_options",
    "option_list",
    "parse_options",
    "split_selection",
    "utcnow",
]
