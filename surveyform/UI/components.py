from __future__ import annotations

from typing import Any, Dict, List

import streamlit as st

from surveyform.API.survey_service import SurveyService
from surveyform.models.errors import (
    AuthenticationError,
    PersistenceUnavailable,
    ResponseValidationFailed,
    SurveyFormError,
)
from surveyform.models.survey import QUESTION_TYPES, Question, Survey, split_selection

from . import state

SURVEY_QUERY_PARAM = "survey"
_TYPE_LABELS = {
    "text": "Text",
    "textarea": "Long text",
    "radio": "Single choice",
    "checkbox": "Multiple choice",
    "email": "Email",
    "number": "Number",
}


def render_auth_page(service: SurveyService) -> None:
    """Display the login and registration forms."""

    st.title("Survey Form")
    st.caption("Create surveys and collect responses.")

    login_tab, register_tab = st.tabs(["Login", "Register"])
    with login_tab:
        with st.form("login_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Login", type="primary")
        if submitted:
            try:
                session = service.auth.login(email, password)
            except AuthenticationError as exc:
                st.error(str(exc))
            except PersistenceUnavailable:
                st.error("Database connection failed. Please check your connection and try again.")
            else:
                state.set_session(session)
                st.rerun()

    with register_tab:
        with st.form("register_form"):
            name = st.text_input("Name")
            email = st.text_input("Email", key="register_email")
            password = st.text_input("Password", type="password", key="register_password")
            submitted = st.form_submit_button("Register")
        if submitted:
            try:
                service.auth.register(name, email, password)
            except SurveyFormError as exc:
                st.error(str(exc))
            else:
                st.success("User registered successfully. You can now log in.")


def render_dashboard(service: SurveyService) -> None:
    """Display the survey builder and the list of available surveys."""

    session = state.get_session()
    title_col, logout_col = st.columns([4, 1])
    with title_col:
        st.title("Dashboard")
        if session:
            st.caption(f"Signed in as {session.name or session.email}")
    with logout_col:
        if st.button("Logout", key="logout_button"):
            service.auth.logout(state.get_token())
            state.set_session(None)
            st.rerun()

    flash = state.pop_flash()
    if flash:
        st.success(flash)

    if state.is_builder_visible():
        render_survey_builder(service)
    elif st.button("Create New Survey", type="primary", key="open_builder_button"):
        state.set_builder_visible(True)
        st.rerun()

    st.divider()
    render_survey_list(service)


def render_survey_builder(service: SurveyService) -> None:
    """Render the dynamic question editor and create the survey on submit."""

    st.markdown("### Create New Survey")
    title = st.text_input("Survey title", key="draft_title")
    description = st.text_area("Description", key="draft_description")

    st.markdown("#### Questions")
    drafts = state.get_draft_questions()
    for position, draft in enumerate(drafts):
        _render_question_editor(position, draft, removable=len(drafts) > 1)

    st.button("Add Question", on_click=state.add_draft_question, key="add_question_button")

    cancel_col, create_col = st.columns(2)
    with cancel_col:
        st.button("Cancel", on_click=state.reset_builder, key="cancel_builder_button")
    with create_col:
        create_clicked = st.button("Create Survey", type="primary", key="create_survey_button")

    if not create_clicked:
        return

    payload = {
        "title": title,
        "description": description,
        "questions": [_collect_question(draft) for draft in drafts],
    }
    try:
        survey_id = service.create_survey(state.get_token(), payload)
    except AuthenticationError:
        state.set_session(None)
        st.error("Your session has expired. Please log in again.")
    except SurveyFormError as exc:
        st.error(str(exc))
    else:
        state.reset_builder()
        state.set_flash(f"Survey created with id {survey_id}.")
        st.rerun()


def _render_question_editor(position: int, draft: Dict[str, Any], *, removable: bool) -> None:
    key = draft["key"]
    prefix = f"{state.DRAFT_FIELD_PREFIX}{key}_"
    with st.container(border=True):
        header_col, remove_col = st.columns([5, 1])
        with header_col:
            st.markdown(f"**Question {position + 1}**")
        with remove_col:
            if removable:
                st.button("Remove", key=f"{prefix}remove", on_click=state.remove_draft_question, args=(key,))

        question_type = st.selectbox(
            "Type",
            options=list(QUESTION_TYPES),
            format_func=lambda value: _TYPE_LABELS.get(value, value),
            key=f"{prefix}type",
        )
        st.text_input("Question", key=f"{prefix}question", placeholder="Enter your question")
        if question_type in ("radio", "checkbox"):
            st.text_input(
                "Options",
                key=f"{prefix}options",
                placeholder="Enter options separated by commas",
            )
        st.checkbox("Required", value=bool(draft.get("required", True)), key=f"{prefix}required")


def _collect_question(draft: Dict[str, Any]) -> Dict[str, Any]:
    prefix = f"{state.DRAFT_FIELD_PREFIX}{draft['key']}_"
    question_type = st.session_state.get(f"{prefix}type", "text")
    question: Dict[str, Any] = {
        "type": question_type,
        "question": st.session_state.get(f"{prefix}question", ""),
        "required": bool(st.session_state.get(f"{prefix}required", True)),
    }
    if question_type in ("radio", "checkbox"):
        question["options"] = st.session_state.get(f"{prefix}options", "")
    return question


def render_survey_list(service: SurveyService) -> None:
    """List stored and sample surveys with actions."""

    st.markdown("### Surveys")
    try:
        surveys = service.list_surveys()
    except PersistenceUnavailable as exc:
        st.warning(str(exc))
        return

    if not surveys:
        st.info("No surveys yet. Create your first survey to get started.")
        return

    for survey in surveys:
        with st.container(border=True):
            st.markdown(f"**{survey.title}**" + ("  _(sample)_" if survey.is_sample else ""))
            if survey.description:
                st.write(survey.description)
            details = [f"{len(survey.questions)} questions", f"by {survey.created_by}"]
            if not survey.is_sample:
                try:
                    details.append(f"{service.count_responses(survey.id)} responses")
                except PersistenceUnavailable:
                    details.append("responses unavailable")
            st.caption(" · ".join(details))

            open_col, delete_col = st.columns(2)
            with open_col:
                st.button(
                    "Open survey",
                    key=f"open_{survey.id}",
                    on_click=_open_survey,
                    args=(survey.id,),
                )
                st.caption(f"Share link: `?{SURVEY_QUERY_PARAM}={survey.id}`")
            with delete_col:
                if not survey.is_sample and st.button("Delete", key=f"delete_{survey.id}"):
                    try:
                        service.delete_survey(state.get_token(), survey.id)
                    except SurveyFormError as exc:
                        st.error(str(exc))
                    else:
                        state.set_flash(f"Deleted survey {survey.title!r}.")
                        st.rerun()


def _open_survey(survey_id: str) -> None:
    state.reset_answers()
    st.query_params[SURVEY_QUERY_PARAM] = survey_id


def render_survey_form(service: SurveyService, survey: Survey) -> None:
    """Render a survey for a respondent and submit the answers."""

    st.title(survey.title)
    if survey.description:
        st.write(survey.description)
    if survey.is_sample:
        st.info("This is a sample survey. Submissions are not stored.")

    errors = state.get_submission_errors()
    with st.form(f"respond_{survey.id}"):
        for index, question in enumerate(survey.questions):
            label = f"{index + 1}. {question.prompt}" + (" *" if question.required else "")
            st.markdown(f"**{label}**")
            render_answer_widget(question, index)
            if index in errors:
                st.error(errors[index])
        respondent_email = st.text_input("Your email (optional)", key=f"{state.ANSWER_PREFIX}email")
        submitted = st.form_submit_button("Submit", type="primary")

    if not submitted:
        return

    answers = {
        index: _read_answer(question, index) for index, question in enumerate(survey.questions)
    }
    try:
        result = service.submit_response(survey.id, answers, respondent_email)
    except ResponseValidationFailed as exc:
        state.set_submission_errors({v.index: v.message for v in exc.violations})
        st.rerun()
    except SurveyFormError as exc:
        st.error(f"Failed to submit survey. {exc}")
    else:
        state.set_submission_errors({})
        state.set_submission(result)
        st.rerun()


def render_answer_widget(question: Question, index: int) -> None:
    """Render the Streamlit widget matching the question type."""

    widget_key = f"{state.ANSWER_PREFIX}{index}"
    label = "Answer"

    if question.type == "textarea":
        st.text_area(label, key=widget_key, placeholder="Enter your detailed response", label_visibility="collapsed")
    elif question.type == "radio":
        options = list(question.options)
        if not options:
            st.caption("No options available.")
            return
        st.radio(label, options=options, index=None, key=widget_key, label_visibility="collapsed")
    elif question.type == "checkbox":
        options = list(question.options)
        if not options:
            st.caption("No options available.")
            return
        st.multiselect(label, options=options, key=widget_key, label_visibility="collapsed")
    else:
        placeholder = "Enter your email" if question.type == "email" else "Enter your answer"
        st.text_input(label, key=widget_key, placeholder=placeholder, label_visibility="collapsed")


def _read_answer(question: Question, index: int) -> Any:
    value = st.session_state.get(f"{state.ANSWER_PREFIX}{index}")
    if value is None:
        return ""
    if question.type == "checkbox":
        return list(value)
    return value


def render_thank_you(survey: Survey) -> None:
    """Display the confirmation after a successful submission."""

    result = state.get_submission()
    st.success("Thank you! Submitted successfully.")
    if result is not None and not result.persisted:
        st.caption("Sample survey: your answers were not stored.")

    if result is not None:
        st.markdown("### Your responses")
        for index, question in enumerate(survey.questions):
            st.markdown(f"**{question.prompt}**")
            answer = result.response.answers.get(index, "")
            if question.type == "checkbox":
                selected: List[str] = split_selection(answer)
                st.write(", ".join(selected) if selected else "_No response recorded._")
            else:
                st.write(answer or "_No response recorded._")

    if st.button("Back to Home", key="back_home_button"):
        state.reset_answers()
        st.query_params.clear()
        st.rerun()
