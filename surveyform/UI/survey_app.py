from __future__ import annotations

import streamlit as st

from surveyform.API.survey_service import SurveyService, build_survey_service
from surveyform.UI import components, state
from surveyform.core.config import settings
from surveyform.core.logging_setup import configure_logging
from surveyform.models.errors import AuthenticationError, NotFound, PersistenceUnavailable


@st.cache_resource
def _get_service() -> SurveyService:
    """Return the process-wide survey service."""

    return build_survey_service()


def run_app() -> None:
    """Entry point for the Streamlit survey UI."""

    configure_logging(settings.log_level)
    st.set_page_config(page_title="Survey Form", page_icon="📝", layout="centered")
    state.ensure_defaults()

    service = _get_service()

    survey_id = st.query_params.get(components.SURVEY_QUERY_PARAM)
    if survey_id:
        _render_respond_view(service, survey_id)
        return

    session = state.get_session()
    if session is not None:
        try:
            service.auth.require_session(session.token)
        except AuthenticationError:
            state.set_session(None)
            session = None

    if session is None:
        components.render_auth_page(service)
        return

    components.render_dashboard(service)


def _render_respond_view(service: SurveyService, survey_id: str) -> None:
    try:
        survey = service.get_survey(survey_id)
    except NotFound:
        st.error("Survey not found.")
        _render_home_link()
        return
    except PersistenceUnavailable as exc:
        st.error(str(exc))
        _render_home_link()
        return

    if not survey.is_active:
        st.warning("This survey is no longer accepting responses.")
        _render_home_link()
        return

    if state.get_submission() is not None:
        components.render_thank_you(survey)
        return

    components.render_survey_form(service, survey)


def _render_home_link() -> None:
    if st.button("Back to Home", key="not_found_home_button"):
        st.query_params.clear()
        st.rerun()
