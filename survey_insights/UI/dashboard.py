from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

import streamlit as st

from survey_insights.API.survey_data_provider import SurveyDataProvider
from survey_insights.core.config import settings
from survey_insights.core.errors import SurveyDataError
from survey_insights.models.analytics import ALL, AggregationResult
from survey_insights.models.survey import SurveySchema
from survey_insights.services.aggregation import QUICK_RANGES, ResponseAggregator, quick_range, to_csv
from survey_insights.services.chart_export import (
    ChartExporter,
    MatplotlibChartRenderer,
    generate_chart_filename,
)
from survey_insights.services.charts import ChartSeries, ChartSeriesBuilder, ChartType

from . import state

_QUICK_RANGE_LABELS = {
    "all": "All time",
    "7d": "Last 7 days",
    "30d": "Last 30 days",
    "month": "This month",
    "custom": "Custom…",
}
_CHART_TYPE_LABELS = {
    ChartType.HORIZONTAL.value: "Horizontal bars",
    ChartType.VERTICAL.value: "Vertical bars",
    ChartType.DONUT.value: "Donut",
}


def render_dashboard(provider: SurveyDataProvider, *, tz=None) -> None:
    """Render filters, summary statistics and one chart per survey field."""

    try:
        schema = provider.get_schema()
        responses = provider.get_responses()
    except SurveyDataError as exc:
        st.error(str(exc))
        return

    state.ensure_defaults(dark_mode=settings.is_dark_mode, chart_type=ChartType.HORIZONTAL.value)
    _render_filters(schema)

    aggregator = ResponseAggregator(schema, tz=tz)
    result = aggregator.aggregate(responses, state.get_filters())
    builder = ChartSeriesBuilder(
        schema,
        is_dark_mode=state.is_dark_mode(),
        default_chart_type=state.default_chart_type(),
    )

    _render_stats(schema, result, builder)

    if not result.distributions and not result.text_summaries:
        st.info("No survey fields match the current filters.")
        return

    charts = builder.all_field_charts(
        result,
        chart_types=state.get_per_field_chart_types(distribution.field_id for distribution in result.distributions),
        show_percent=state.show_percent(),
    )
    exporter = ChartExporter(MatplotlibChartRenderer(), is_dark_mode=state.is_dark_mode())
    for series in charts:
        _render_chart(schema, series, exporter)

    if result.text_summaries:
        st.subheader("Free-text fields")
        st.table(
            [
                {"Section": summary.section, "Field": summary.field_label, "Provided": summary.provided, "Empty": summary.empty}
                for summary in result.text_summaries
            ]
        )

    st.download_button(
        "Download aggregated CSV",
        data=to_csv(result).encode("utf-8"),
        file_name=f"aggregated-{schema.id}.csv",
        mime="text/csv",
    )


def _render_filters(schema: SurveySchema) -> None:
    sidebar = st.sidebar
    sidebar.header("Filters")
    sidebar.toggle("Dark mode", key=state.DARK_MODE_KEY)

    sidebar.selectbox(
        "Quick range",
        QUICK_RANGES,
        key=state.QUICK_RANGE_KEY,
        format_func=lambda value: _QUICK_RANGE_LABELS.get(value, value),
        on_change=_apply_quick_range,
    )
    if st.session_state[state.QUICK_RANGE_KEY] == "custom":
        sidebar.date_input("Start date", key=state.START_DATE_KEY)
        sidebar.date_input("End date", key=state.END_DATE_KEY)

    sections = sorted(schema.sections, key=lambda section: section.order)
    sidebar.selectbox(
        "Section",
        [ALL] + [section.id for section in sections],
        key=state.SECTION_KEY,
        format_func=lambda value: "All" if value == ALL else _section_title(schema, value),
        on_change=_reset_subsection,
    )

    selected = st.session_state[state.SECTION_KEY]
    subsections = [
        (subsection.id, f"{section.title} • {subsection.title}")
        for section in sections
        if selected == ALL or section.id == selected
        for subsection in sorted(section.subsections, key=lambda item: item.order)
    ]
    subsection_titles = dict(subsections)
    sidebar.selectbox(
        "Subsection",
        [ALL] + [subsection_id for subsection_id, _ in subsections],
        key=state.SUBSECTION_KEY,
        format_func=lambda value: "All" if value == ALL else subsection_titles.get(value, value),
    )

    sidebar.text_input("Search", key=state.SEARCH_KEY, placeholder="Search free-text answers")
    sidebar.checkbox("Show percentages", key=state.SHOW_PERCENT_KEY)
    sidebar.selectbox(
        "Default chart type",
        list(_CHART_TYPE_LABELS),
        key=state.CHART_TYPE_KEY,
        format_func=lambda value: _CHART_TYPE_LABELS[value],
    )
    sidebar.button("Reset filters", on_click=state.reset)


def _reset_subsection() -> None:
    st.session_state[state.SUBSECTION_KEY] = ALL


def _apply_quick_range() -> None:
    selection = st.session_state[state.QUICK_RANGE_KEY]
    if selection == "custom":
        return
    start, end = quick_range(selection)
    state.set_date_range(start, end)


def _render_stats(schema: SurveySchema, result: AggregationResult, builder: ChartSeriesBuilder) -> None:
    filters = state.get_filters()
    instance, responses, window, daily = st.columns(4)
    instance.caption("Survey")
    instance.write(schema.title or schema.id)
    responses.metric("Responses", result.totals.total_responses)

    window.caption("Filtered range")
    if filters.start_date or filters.end_date:
        start = filters.start_date.isoformat() if filters.start_date else "—"
        end = filters.end_date.isoformat() if filters.end_date else "—"
        window.write(f"{start} → {end}")
    else:
        window.write("All time")

    sparkline = builder.daily_chart(result)
    daily.caption(sparkline.title)
    if sparkline.points:
        daily.vega_lite_chart(_vega_spec(sparkline, height=60, axes=False), use_container_width=True)
    daily.caption(sparkline.description or "")


def _render_chart(schema: SurveySchema, series: ChartSeries, exporter: ChartExporter) -> None:
    header = " • ".join(part for part in (series.section, series.subsection, series.title) if part)
    st.subheader(header)
    if series.description:
        st.caption(series.description)

    chart_column, control_column = st.columns([4, 1])
    chart_column.vega_lite_chart(_vega_spec(series), use_container_width=True)

    options = [""] + [
        value
        for value in _CHART_TYPE_LABELS
        if not (value == ChartType.DONUT.value and series.metadata.get("kind") == "histogram")
    ]
    control_column.selectbox(
        "Chart type",
        options,
        key=state.field_chart_type_key(series.field_id),
        format_func=lambda value: "Default" if not value else _CHART_TYPE_LABELS[value],
    )

    invalid = series.metadata.get("total_invalid", 0)
    if invalid:
        control_column.caption(f"{invalid} invalid or missing")

    if control_column.button("Export image", key=f"export_{series.field_id}"):
        filename = generate_chart_filename(
            schema.title or schema.id,
            datetime.now(),
            section_title=series.section,
            subsection_title=series.subsection,
            field_label=series.title,
        )
        outcome = exporter.export(
            series,
            filename,
            image_format=settings.export.image_format,
            pixel_ratio=settings.export.pixel_ratio,
        )
        state.set_export(series.field_id, {"ok": outcome.ok, "filename": outcome.filename, "payload": outcome.payload, "error": outcome.error})

    export = state.get_export(series.field_id)
    if export:
        if export["ok"]:
            control_column.download_button(
                "Save image",
                data=export["payload"],
                file_name=export["filename"],
                key=f"download_{series.field_id}",
            )
        else:
            control_column.warning(f"Export failed: {export['error']}")


def _section_title(schema: SurveySchema, section_id: str) -> str:
    for section in schema.sections:
        if section.id == section_id:
            return section.title or section.id
    return section_id


def _vega_spec(series: ChartSeries, *, height: int | None = None, axes: bool = True) -> Dict[str, Any]:
    """Vega-Lite spec drawing ``series`` with its resolved colors."""

    values: List[Dict[str, Any]] = [
        {"label": point.label, "value": point.value, "count": point.count, "order": index}
        for index, point in enumerate(series.points)
    ]
    color = {
        "field": "label",
        "type": "nominal",
        "scale": {"domain": list(series.labels), "range": list(series.colors)},
        "sort": list(series.labels),
        "legend": None if series.chart_type != ChartType.DONUT else {"title": None},
    }
    tooltip = [{"field": "label", "type": "nominal"}, {"field": "count", "type": "quantitative"}]

    if series.chart_type == ChartType.DONUT:
        spec: Dict[str, Any] = {
            "mark": {"type": "arc", "innerRadius": 50},
            "encoding": {
                "theta": {"field": "value", "type": "quantitative"},
                "color": color,
                "order": {"field": "order", "type": "quantitative"},
                "tooltip": tooltip,
            },
        }
    else:
        category = {"field": "label", "type": "nominal", "sort": list(series.labels), "title": None}
        measure = {"field": "value", "type": "quantitative", "title": "%" if series.show_percent else "Count"}
        if not axes:
            category["axis"] = None
            measure["axis"] = None
        horizontal = series.chart_type == ChartType.HORIZONTAL
        spec = {
            "mark": {"type": "bar"},
            "encoding": {
                "x": measure if horizontal else category,
                "y": category if horizontal else measure,
                "color": color,
                "tooltip": tooltip,
            },
        }

    spec["data"] = {"values": values}
    if height is not None:
        spec["height"] = height
    return spec
