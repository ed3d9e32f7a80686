from __future__ import annotations

from typing import Any, Dict, List, Optional

import streamlit as st

from surveyform.services.auth_service import Session
from surveyform.services.response_collector import SubmissionResult

SESSION_KEY = "auth_session"
DRAFT_QUESTIONS_KEY = "draft_questions"
DRAFT_COUNTER_KEY = "draft_question_counter"
SHOW_BUILDER_KEY = "show_builder"
FLASH_KEY = "flash_message"
SUBMISSION_KEY = "submission_result"
SUBMISSION_ERRORS_KEY = "submission_errors"

ANSWER_PREFIX = "answer_"
DRAFT_FIELD_PREFIX = "draft_q_"


def _new_question(counter: int) -> Dict[str, Any]:
    return {"key": counter, "type": "text", "question": "", "options": "", "required": True}


def ensure_defaults() -> None:
    """Ensure the expected session state keys exist with sensible defaults."""

    st.session_state.setdefault(SESSION_KEY, None)
    st.session_state.setdefault(SHOW_BUILDER_KEY, False)
    st.session_state.setdefault(FLASH_KEY, None)
    st.session_state.setdefault(SUBMISSION_KEY, None)
    st.session_state.setdefault(SUBMISSION_ERRORS_KEY, {})
    st.session_state.setdefault(DRAFT_COUNTER_KEY, 1)
    st.session_state.setdefault(DRAFT_QUESTIONS_KEY, [_new_question(0)])


def get_session() -> Optional[Session]:
    return st.session_state.get(SESSION_KEY)


def get_token() -> Optional[str]:
    session = get_session()
    return session.token if session else None


def set_session(session: Optional[Session]) -> None:
    st.session_state[SESSION_KEY] = session


def is_builder_visible() -> bool:
    return bool(st.session_state[SHOW_BUILDER_KEY])


def set_builder_visible(is_visible: bool) -> None:
    st.session_state[SHOW_BUILDER_KEY] = bool(is_visible)


def get_draft_questions() -> List[Dict[str, Any]]:
    """Return the questions currently shown in the survey builder."""

    return st.session_state[DRAFT_QUESTIONS_KEY]


def add_draft_question() -> None:
    counter = int(st.session_state[DRAFT_COUNTER_KEY])
    st.session_state[DRAFT_QUESTIONS_KEY].append(_new_question(counter))
    st.session_state[DRAFT_COUNTER_KEY] = counter + 1


def remove_draft_question(key: int) -> None:
    """Drop a builder question, keeping at least one."""

    questions = get_draft_questions()
    if len(questions) <= 1:
        return
    st.session_state[DRAFT_QUESTIONS_KEY] = [q for q in questions if q["key"] != key]
    for name in [n for n in st.session_state.keys() if n.startswith(f"{DRAFT_FIELD_PREFIX}{key}_")]:
        del st.session_state[name]


def reset_builder() -> None:
    """Clear the survey builder back to a single empty question."""

    for name in [n for n in st.session_state.keys() if str(n).startswith(DRAFT_FIELD_PREFIX)]:
        del st.session_state[name]
    for name in ("draft_title", "draft_description"):
        st.session_state.pop(name, None)
    counter = int(st.session_state[DRAFT_COUNTER_KEY])
    st.session_state[DRAFT_QUESTIONS_KEY] = [_new_question(counter)]
    st.session_state[DRAFT_COUNTER_KEY] = counter + 1
    st.session_state[SHOW_BUILDER_KEY] = False


def set_flash(message: Optional[str]) -> None:
    st.session_state[FLASH_KEY] = message


def pop_flash() -> Optional[str]:
    message = st.session_state.get(FLASH_KEY)
    st.session_state[FLASH_KEY] = None
    return message


def get_submission() -> Optional[SubmissionResult]:
    return st.session_state.get(SUBMISSION_KEY)


def set_submission(result: Optional[SubmissionResult]) -> None:
    st.session_state[SUBMISSION_KEY] = result


def get_submission_errors() -> Dict[int, str]:
    return st.session_state[SUBMISSION_ERRORS_KEY]


def set_submission_errors(errors: Dict[int, str]) -> None:
    st.session_state[SUBMISSION_ERRORS_KEY] = dict(errors)


def reset_answers() -> None:
    """Forget answer widgets and the last submission outcome."""

    for name in [n for n in st.session_state.keys() if str(n).startswith(ANSWER_PREFIX)]:
        del st.session_state[name]
    st.session_state[SUBMISSION_KEY] = None
    st.session_state[SUBMISSION_ERRORS_KEY] = {}
