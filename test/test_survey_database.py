from __future__ import annotations

import logging

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from surveyform.models.errors import CorruptSurvey, NotFound, PersistenceUnavailable, SurveyNotFound
from surveyform.models.survey import SurveyResponse
from surveyform.services.survey_database import InMemorySurveyRepository, MongoSurveyRepository
from surveyform.services.survey_validation import validate_draft, validate_patch


@pytest.fixture
def draft(feedback_questions):
    return validate_draft("Feedback", "Tell us", feedback_questions, "ana@example.com")


@pytest.fixture
def collections(stub_collection_factory):
    return stub_collection_factory(), stub_collection_factory()


@pytest.fixture
def mongo_repository(collections):
    surveys, responses = collections
    return MongoSurveyRepository(surveys, responses)


def test_mongo_create_and_get_round_trip(mongo_repository, collections, draft) -> None:
    survey_id = mongo_repository.create_survey(draft)

    stored = collections[0].documents[0]
    assert str(stored["_id"]) == survey_id
    assert stored["createdBy"] == "ana@example.com"
    assert stored["questions"][0] == {"type": "text", "question": "Name", "required": True}

    survey = mongo_repository.get_survey(survey_id)
    assert survey.id == survey_id
    assert survey.title == "Feedback"
    assert [q.prompt for q in survey.questions] == ["Name", "Comment"]
    assert survey.is_sample is False


def test_mongo_list_preserves_store_order(mongo_repository, feedback_questions) -> None:
    for title in ("First", "Second", "Third"):
        mongo_repository.create_survey(validate_draft(title, None, feedback_questions))

    assert [s.title for s in mongo_repository.list_surveys()] == ["First", "Second", "Third"]


def test_mongo_unknown_or_malformed_id_is_not_found(mongo_repository) -> None:
    with pytest.raises(SurveyNotFound):
        mongo_repository.get_survey(str(ObjectId()))
    with pytest.raises(SurveyNotFound):
        mongo_repository.get_survey("not-an-object-id")


def test_mongo_update_and_delete(mongo_repository, draft) -> None:
    survey_id = mongo_repository.create_survey(draft)

    mongo_repository.update_survey(survey_id, validate_patch({"title": "Renamed", "isActive": False}))
    survey = mongo_repository.get_survey(survey_id)
    assert survey.title == "Renamed"
    assert survey.is_active is False

    mongo_repository.delete_survey(survey_id)
    with pytest.raises(SurveyNotFound):
        mongo_repository.get_survey(survey_id)
    with pytest.raises(SurveyNotFound):
        mongo_repository.delete_survey(survey_id)
    with pytest.raises(SurveyNotFound):
        mongo_repository.update_survey(survey_id, validate_patch({"title": "Gone"}))


def test_mongo_append_response_requires_parent(mongo_repository, collections, draft) -> None:
    survey_id = mongo_repository.create_survey(draft)
    response = SurveyResponse(survey_id=survey_id, answers={0: "Alice", 1: ""})

    response_id = mongo_repository.append_response(survey_id, response)

    stored = collections[1].documents[0]
    assert str(stored["_id"]) == response_id
    assert stored["answers"] == {"0": "Alice", "1": ""}
    assert mongo_repository.list_responses(survey_id) == [response]

    missing_id = str(ObjectId())
    with pytest.raises(SurveyNotFound):
        mongo_repository.append_response(missing_id, response)
    with pytest.raises(SurveyNotFound):
        mongo_repository.append_response("sample-1", response)
    assert len(collections[1].documents) == 1


def test_mongo_append_response_rejects_sample_documents(stub_collection_factory) -> None:
    sample_id = ObjectId()
    surveys = stub_collection_factory([{"_id": sample_id, "title": "Demo", "questions": [], "isSample": True}])
    responses = stub_collection_factory()
    repository = MongoSurveyRepository(surveys, responses)

    with pytest.raises(SurveyNotFound):
        repository.append_response(str(sample_id), SurveyResponse(survey_id=str(sample_id), answers={}))
    assert "insert_one" not in responses.calls


def test_mongo_unreachable_store_is_reported(mongo_repository, collections, draft) -> None:
    collections[0].error = ServerSelectionTimeoutError("no servers")

    with pytest.raises(PersistenceUnavailable):
        mongo_repository.create_survey(draft)
    with pytest.raises(PersistenceUnavailable):
        mongo_repository.list_surveys()
    with pytest.raises(PersistenceUnavailable):
        mongo_repository.get_survey(str(ObjectId()))


def test_mongo_unreadable_documents_are_skipped_or_reported(stub_collection_factory, caplog) -> None:
    good_id, blank_prompt_id, bad_type_id = ObjectId(), ObjectId(), ObjectId()
    surveys = stub_collection_factory(
        [
            {"_id": good_id, "title": "Good", "questions": [{"type": "text", "question": "Name"}]},
            {"_id": blank_prompt_id, "title": "Legacy", "questions": [{"type": "text", "question": "", "required": True}]},
            {"_id": bad_type_id, "title": "Odd", "questions": [{"type": "slider", "question": "Rate"}]},
        ]
    )
    repository = MongoSurveyRepository(surveys, stub_collection_factory())

    with caplog.at_level(logging.WARNING, logger="surveyform.services.survey_database"):
        listed = repository.list_surveys()

    assert [s.id for s in listed] == [str(good_id)]
    assert str(blank_prompt_id) in caplog.text
    assert str(bad_type_id) in caplog.text

    with pytest.raises(CorruptSurvey) as excinfo:
        repository.get_survey(str(blank_prompt_id))
    assert excinfo.value.survey_id == str(blank_prompt_id)
    assert excinfo.value.code == "corrupt_survey"
    assert isinstance(excinfo.value, NotFound)


def test_memory_ids_are_local_and_increasing(draft) -> None:
    repository = InMemorySurveyRepository()

    first = repository.create_survey(draft)
    second = repository.create_survey(draft)

    assert (first, second) == ("local-1", "local-2")
    assert [s.id for s in repository.list_surveys()] == ["local-1", "local-2"]
    assert repository.get_survey(first).created_by == "ana@example.com"


def test_memory_update_delete_and_responses(draft) -> None:
    repository = InMemorySurveyRepository()
    survey_id = repository.create_survey(draft)

    repository.update_survey(survey_id, validate_patch({"description": "Updated"}))
    assert repository.get_survey(survey_id).description == "Updated"

    response = SurveyResponse(survey_id=survey_id, answers={0: "Alice"})
    repository.append_response(survey_id, response)
    assert repository.list_responses(survey_id) == [response]
    assert repository.list_responses("local-99") == []

    repository.delete_survey(survey_id)
    with pytest.raises(SurveyNotFound):
        repository.get_survey(survey_id)
    with pytest.raises(SurveyNotFound):
        repository.append_response(survey_id, response)
    with pytest.raises(SurveyNotFound):
        repository.update_survey(survey_id, validate_patch({"title": "x"}))
