"""Built-in demonstration surveys.

Samples are never persisted and only accept simulated submissions. Their
identifiers share the ``sample-`` prefix so they can be recognised without a
store lookup.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from surveyform.models.survey import Survey

SAMPLE_ID_PREFIX = "sample-"

_SAMPLE_DOCUMENTS = [
    {
        "_id": "sample-1",
        "title": "Customer Satisfaction Survey",
        "description": (
            "Help us improve our services by sharing your experience with our products "
            "and customer support."
        ),
        "questions": [
            {
                "type": "radio",
                "question": "How satisfied are you with our product?",
                "options": "Very Satisfied,Satisfied,Neutral,Dissatisfied,Very Dissatisfied",
                "required": True,
            },
            {
                "type": "radio",
                "question": "How would you rate our customer service?",
                "options": "Excellent,Good,Average,Poor,Very Poor",
                "required": True,
            },
            {
                "type": "textarea",
                "question": "What can we do to improve your experience?",
                "required": False,
            },
            {
                "type": "radio",
                "question": "Would you recommend us to others?",
                "options": "Definitely,Probably,Not Sure,Probably Not,Definitely Not",
                "required": True,
            },
        ],
        "createdBy": "Sample Admin",
        "createdAt": datetime(2024, 1, 15, tzinfo=timezone.utc),
        "isActive": True,
        "isSample": True,
    },
    {
        "_id": "sample-2",
        "title": "Product Feedback Survey",
        "description": (
            "Share your thoughts about our new product features and help us prioritize "
            "future development."
        ),
        "questions": [
            {
                "type": "text",
                "question": "What is your primary use case for our product?",
                "required": True,
            },
            {
                "type": "radio",
                "question": "How easy is our product to use?",
                "options": "Very Easy,Easy,Moderate,Difficult,Very Difficult",
                "required": True,
            },
            {
                "type": "checkbox",
                "question": "Which features do you use most often?",
                "options": "Dashboard,Reports,Analytics,Integrations,Mobile App,API",
                "required": False,
            },
            {
                "type": "radio",
                "question": "How likely are you to continue using our product?",
                "options": "Very Likely,Likely,Neutral,Unlikely,Very Unlikely",
                "required": True,
            },
            {
                "type": "textarea",
                "question": "What new features would you like to see?",
                "required": False,
            },
        ],
        "createdBy": "Product Team",
        "createdAt": datetime(2024, 1, 25, tzinfo=timezone.utc),
        "isActive": True,
        "isSample": True,
    },
]

_SAMPLES: Dict[str, Survey] = {
    str(document["_id"]): Survey.from_document(document) for document in _SAMPLE_DOCUMENTS
}


def is_sample_id(survey_id: str) -> bool:
    return survey_id.startswith(SAMPLE_ID_PREFIX)


def list_sample_surveys() -> List[Survey]:
    return list(_SAMPLES.values())


def get_sample_survey(survey_id: str) -> Optional[Survey]:
    return _SAMPLES.get(survey_id)


__all__ = ["SAMPLE_ID_PREFIX", "get_sample_survey", "is_sample_id", "list_sample_surveys"]
