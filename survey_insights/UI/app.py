from __future__ import annotations

import logging
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import streamlit as st

from survey_insights.API.survey_data_provider import get_survey_data_provider
from survey_insights.core.config import settings

from .dashboard import render_dashboard

logger = logging.getLogger(__name__)


def run_app() -> None:
    """Entry point for the Streamlit analytics dashboard."""

    st.set_page_config(page_title="Survey Insights", page_icon="📊", layout="wide")
    st.title("Survey responses")
    render_dashboard(get_survey_data_provider(), tz=_resolve_timezone(settings.timezone))


def _resolve_timezone(name: str | None) -> tzinfo | None:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown ANALYTICS_TIMEZONE %r; using recorded timestamps as-is", name)
        return None
