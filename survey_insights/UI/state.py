from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Optional

import streamlit as st

from survey_insights.models.analytics import ALL, AggregationFilters

DARK_MODE_KEY = "dark_mode"
QUICK_RANGE_KEY = "quick_range"
START_DATE_KEY = "start_date"
END_DATE_KEY = "end_date"
SECTION_KEY = "section_filter"
SUBSECTION_KEY = "subsection_filter"
SEARCH_KEY = "search"
SHOW_PERCENT_KEY = "show_percent"
CHART_TYPE_KEY = "default_chart_type"
FIELD_CHART_TYPE_PREFIX = "chart_type_"
EXPORTS_KEY = "chart_exports"


def reset() -> None:
    """Reset all dashboard filter values."""

    st.session_state[QUICK_RANGE_KEY] = ALL
    st.session_state[START_DATE_KEY] = None
    st.session_state[END_DATE_KEY] = None
    st.session_state[SECTION_KEY] = ALL
    st.session_state[SUBSECTION_KEY] = ALL
    st.session_state[SEARCH_KEY] = ""
    st.session_state[SHOW_PERCENT_KEY] = False
    st.session_state[EXPORTS_KEY] = {}


def ensure_defaults(*, dark_mode: bool, chart_type: str) -> None:
    """Ensure the expected session state keys exist with sensible defaults."""

    st.session_state.setdefault(DARK_MODE_KEY, dark_mode)
    st.session_state.setdefault(QUICK_RANGE_KEY, ALL)
    st.session_state.setdefault(START_DATE_KEY, None)
    st.session_state.setdefault(END_DATE_KEY, None)
    st.session_state.setdefault(SECTION_KEY, ALL)
    st.session_state.setdefault(SUBSECTION_KEY, ALL)
    st.session_state.setdefault(SEARCH_KEY, "")
    st.session_state.setdefault(SHOW_PERCENT_KEY, False)
    st.session_state.setdefault(CHART_TYPE_KEY, chart_type)
    st.session_state.setdefault(EXPORTS_KEY, {})


def is_dark_mode() -> bool:
    return bool(st.session_state[DARK_MODE_KEY])


def set_date_range(start: Optional[date], end: Optional[date]) -> None:
    """Persist the explicit date bounds picked by a quick range or the date inputs."""

    st.session_state[START_DATE_KEY] = start
    st.session_state[END_DATE_KEY] = end


def get_filters() -> AggregationFilters:
    """Build the aggregation filters from the current widget values."""

    return AggregationFilters(
        start_date=st.session_state[START_DATE_KEY],
        end_date=st.session_state[END_DATE_KEY],
        section=st.session_state[SECTION_KEY],
        subsection=st.session_state[SUBSECTION_KEY],
        search=st.session_state[SEARCH_KEY],
    )


def show_percent() -> bool:
    return bool(st.session_state[SHOW_PERCENT_KEY])


def default_chart_type() -> str:
    return str(st.session_state[CHART_TYPE_KEY])


def field_chart_type_key(field_id: str) -> str:
    return f"{FIELD_CHART_TYPE_PREFIX}{field_id}"


def get_per_field_chart_types(field_ids: Iterable[str]) -> Dict[str, str]:
    """Return the chart type chosen for each field that overrides the default."""

    chosen: Dict[str, str] = {}
    for field_id in field_ids:
        value = st.session_state.get(field_chart_type_key(field_id))
        if value:
            chosen[field_id] = value
    return chosen


def get_export(field_id: str) -> Optional[dict]:
    return st.session_state[EXPORTS_KEY].get(field_id)


def set_export(field_id: str, value: dict) -> None:
    st.session_state[EXPORTS_KEY][field_id] = value
