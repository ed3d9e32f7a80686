from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Tuple

import pytest

from surveyform.models.errors import (
    RequiredFieldMissing,
    ResponseValidationFailed,
    SurveyNotFound,
    SurveyValidationError,
)
from surveyform.models.survey import Question, Survey, SurveyResponse
from surveyform.services.response_collector import (
    ResponseCollector,
    SubmissionStatus,
    normalize_answers,
)

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class _RecordingRepository:
    def __init__(self) -> None:
        self.appended: List[Tuple[str, SurveyResponse]] = []

    def append_response(self, survey_id: str, response: SurveyResponse) -> str:
        self.appended.append((survey_id, response))
        return f"response-{len(self.appended)}"


class _MissingSurveyRepository:
    def append_response(self, survey_id: str, response: SurveyResponse) -> str:
        raise SurveyNotFound(survey_id)


def _survey(*, is_sample: bool = False) -> Survey:
    return Survey(
        id="sample-9" if is_sample else "64b7f0c2a1b2c3d4e5f60718",
        title="Feedback",
        questions=[
            Question(prompt="Name", required=True),
            Question(prompt="Comment", type="textarea", required=False),
        ],
        is_sample=is_sample,
    )


def _collector(repository) -> ResponseCollector:
    return ResponseCollector(repository, clock=lambda: FIXED_NOW)


def test_blank_required_answer_fails() -> None:
    repository = _RecordingRepository()

    with pytest.raises(ResponseValidationFailed) as excinfo:
        _collector(repository).collect(_survey(), {0: "", 1: "hi"}, None)

    assert excinfo.value.violations == (RequiredFieldMissing(0),)
    assert excinfo.value.code == "validation_failed"
    assert repository.appended == []


def test_valid_answers_are_persisted_as_submitted() -> None:
    repository = _RecordingRepository()

    result = _collector(repository).collect(_survey(), {0: "Alice", 1: ""}, None)

    assert result.status is SubmissionStatus.PERSISTED
    assert result.persisted is True
    assert result.response_id == "response-1"
    survey_id, stored = repository.appended[0]
    assert survey_id == "64b7f0c2a1b2c3d4e5f60718"
    assert stored.answers == {0: "Alice", 1: ""}
    assert stored.respondent_email == "anonymous"
    assert stored.submitted_at == FIXED_NOW


def test_sample_survey_submission_is_simulated() -> None:
    repository = _RecordingRepository()

    result = _collector(repository).collect(_survey(is_sample=True), {0: "Alice"}, "bob@example.com")

    assert result.status is SubmissionStatus.SIMULATED
    assert result.persisted is False
    assert result.response_id is None
    assert result.response.respondent_email == "bob@example.com"
    assert repository.appended == []


def test_sample_survey_still_validates_required_answers() -> None:
    with pytest.raises(ResponseValidationFailed):
        _collector(_RecordingRepository()).collect(_survey(is_sample=True), {}, None)


def test_every_missing_required_answer_is_reported() -> None:
    survey = Survey(
        id="local-1",
        title="Long form",
        questions=[
            Question(prompt="A", required=True),
            Question(prompt="B", required=False),
            Question(prompt="C", required=True),
            Question(prompt="D", type="checkbox", options="x,y", required=True),
            Question(prompt="E", required=True),
        ],
    )

    with pytest.raises(ResponseValidationFailed) as excinfo:
        _collector(_RecordingRepository()).collect(survey, {"0": "  ", 3: [], 4: "ok"}, None)

    assert excinfo.value.indices == (0, 2, 3)


def test_checkbox_selection_is_joined_in_order() -> None:
    survey = Survey(
        id="local-2",
        title="Features",
        questions=[Question(prompt="Which?", type="checkbox", options="Dashboard,Reports,API", required=True)],
    )
    repository = _RecordingRepository()

    result = _collector(repository).collect(survey, {"0": ["API", "Dashboard"]}, "  ")

    assert result.response.answers == {0: "API,Dashboard"}
    assert result.response.respondent_email == "anonymous"


def test_answers_are_normalized_to_indexed_strings() -> None:
    answers = normalize_answers(_survey(), {"1": 5, 0: "Alice", 7: "ignored", 2: None})

    assert answers == {0: "Alice", 1: "5"}


@pytest.mark.parametrize("payload", [{"name": "Alice"}, {True: "Alice"}, ["Alice"]])
def test_malformed_answer_payload_is_rejected(payload) -> None:
    with pytest.raises(SurveyValidationError):
        normalize_answers(_survey(), payload)


def test_repository_rejection_propagates() -> None:
    with pytest.raises(SurveyNotFound):
        _collector(_MissingSurveyRepository()).collect(_survey(), {0: "Alice"}, None)


def test_response_document_uses_string_keys() -> None:
    repository = _RecordingRepository()
    result = _collector(repository).collect(_survey(), {0: "Alice", 1: "Great"}, "a@b.co")

    document = result.response.to_document()

    assert document == {
        "surveyId": "64b7f0c2a1b2c3d4e5f60718",
        "answers": {"0": "Alice", "1": "Great"},
        "respondentEmail": "a@b.co",
        "submittedAt": FIXED_NOW,
    }
    assert SurveyResponse.from_document(document) == result.response
