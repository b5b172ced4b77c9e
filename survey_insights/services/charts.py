from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Tuple

from survey_insights.models.analytics import AggregationResult, FieldDistribution
from survey_insights.models.survey import FieldSchema, NumericField, Option, SurveySchema
from survey_insights.services.colors import (
    compute_color_for_label,
    hash_salt_from,
    normalize_key,
    normalize_strict,
)
from survey_insights.services.palettes import (
    DEFAULT_SCHEME,
    FREE_TEXT_FIELD_TYPES,
    FREE_TEXT_PATTERN,
    ColorScheme,
)

_FREE_TEXT_HINT = re.compile(FREE_TEXT_PATTERN, re.IGNORECASE)
_NEUTRAL_UNIQUE_THRESHOLD = 8
DAILY_SERIES_ID = "__daily_submissions__"


class ChartType(str, Enum):
    """Chart shapes the dashboard can draw a series as."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    DONUT = "donut"


@dataclass(frozen=True)
class ChartPoint:
    label: str
    value: float
    count: int
    color: str


@dataclass(frozen=True)
class ChartSeries:
    """Structured payload describing a chart for the UI layer."""

    field_id: str
    title: str
    chart_type: ChartType
    points: Tuple[ChartPoint, ...]
    total: int = 0
    show_percent: bool = False
    section: str | None = None
    subsection: str | None = None
    description: str | None = None
    metadata: dict[str, int | float | str | bool] = field(default_factory=dict)

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(point.label for point in self.points)

    @property
    def values(self) -> Tuple[float, ...]:
        return tuple(point.value for point in self.points)

    @property
    def colors(self) -> Tuple[str, ...]:
        return tuple(point.color for point in self.points)

    def to_series(self) -> List[Tuple[str, float, str]]:
        """Return data as a list of (label, value, color) tuples."""

        return [(point.label, point.value, point.color) for point in self.points]

    def color_table(self) -> Dict[str, str]:
        """Return the label -> color mapping used by legends."""

        return {point.label: point.color for point in self.points}


def color_overrides(options: Iterable[Option]) -> Dict[str, str]:
    """Configured option colors keyed by value and label in raw, lowercase and strict form."""

    overrides: Dict[str, str] = {}
    for option in options:
        if not option.color:
            continue
        for entry in (option.value, option.label):
            if not entry:
                continue
            overrides[entry] = option.color
            overrides[normalize_key(entry)] = option.color
            overrides[normalize_strict(entry)] = option.color
    return overrides


def should_use_neutral_mode(schema_field: FieldSchema, unique_count: int = 0) -> bool:
    """Return True when a field's answers are free-form rather than categories."""

    if schema_field.type in FREE_TEXT_FIELD_TYPES:
        return True
    if _FREE_TEXT_HINT.search(schema_field.label or "") or _FREE_TEXT_HINT.search(schema_field.id or ""):
        return True
    has_options = getattr(schema_field, "has_options", False)
    return not has_options and not isinstance(schema_field, NumericField) and unique_count > _NEUTRAL_UNIQUE_THRESHOLD


class ChartSeriesBuilder:
    """Attach colors to aggregated distributions for the rendering layer."""

    def __init__(
        self,
        schema: SurveySchema,
        *,
        is_dark_mode: bool = False,
        scheme: ColorScheme = DEFAULT_SCHEME,
        default_chart_type: ChartType | str = ChartType.HORIZONTAL,
    ) -> None:
        if schema is None:
            raise ValueError("schema must be provided")
        self._schema = schema
        self._is_dark_mode = is_dark_mode
        self._scheme = scheme
        self._default_chart_type = _coerce_chart_type(default_chart_type)

    def field_chart(
        self,
        distribution: FieldDistribution,
        *,
        chart_type: ChartType | str | None = None,
        show_percent: bool = False,
    ) -> ChartSeries:
        """Return a colored series for one field distribution, buckets kept in schema order."""

        return build_chart_series(
            distribution,
            self._schema.field_by_id(distribution.field_id),
            is_dark_mode=self._is_dark_mode,
            show_percent=show_percent,
            chart_type=_resolve_chart_type(chart_type, distribution, self._default_chart_type),
            scheme=self._scheme,
        )

    def all_field_charts(
        self,
        result: AggregationResult,
        *,
        chart_types: Mapping[str, ChartType | str] | None = None,
        show_percent: bool = False,
    ) -> List[ChartSeries]:
        """Return one chart per distribution, honouring per-field chart type choices."""

        per_field = chart_types or {}
        return [
            self.field_chart(
                distribution,
                chart_type=per_field.get(distribution.field_id),
                show_percent=show_percent,
            )
            for distribution in result.distributions
        ]

    def daily_chart(self, result: AggregationResult) -> ChartSeries:
        """Return the daily submission sparkline as a vertical series."""

        theme = self._scheme.theme(self._is_dark_mode)
        color = theme.palette[0]
        points = tuple(
            ChartPoint(label=point.date.isoformat(), value=float(point.count), count=point.count, color=color)
            for point in result.daily_series
        )
        return ChartSeries(
            field_id=DAILY_SERIES_ID,
            title="Daily submissions",
            chart_type=ChartType.VERTICAL,
            points=points,
            total=sum(point.count for point in points),
            description=f"Today: {result.totals.today_count} • In range: {result.totals.total_filtered}",
        )


def build_chart_series(
    distribution: FieldDistribution,
    schema_field: FieldSchema | None = None,
    *,
    is_dark_mode: bool = False,
    show_percent: bool = False,
    chart_type: ChartType | str | None = None,
    scheme: ColorScheme = DEFAULT_SCHEME,
) -> ChartSeries:
    """Attach colors (and optionally percentages) to one field distribution.

    Option colors configured on ``schema_field`` win over the semantic table;
    the field id salts the palette fallback so two fields sharing a label
    can still differ.
    """

    resolved_type = _resolve_chart_type(chart_type, distribution)
    options = getattr(schema_field, "options", ()) if schema_field is not None else ()
    overrides = color_overrides(options)
    unique_count = sum(1 for bucket in distribution.buckets if bucket.count)
    neutral_mode = should_use_neutral_mode(schema_field, unique_count) if schema_field is not None else False
    salt = hash_salt_from(distribution.field_id)

    total = distribution.total_counted
    points = []
    for bucket in distribution.buckets:
        color = compute_color_for_label(
            bucket.label,
            override_map=overrides,
            neutral_mode=neutral_mode,
            color_salt=salt,
            is_dark_mode=is_dark_mode,
            scheme=scheme,
        )
        points.append(
            ChartPoint(
                label=bucket.label,
                value=_percent(bucket.count, total) if show_percent else float(bucket.count),
                count=bucket.count,
                color=color,
            )
        )

    return ChartSeries(
        field_id=distribution.field_id,
        title=distribution.field_label or distribution.field_id,
        chart_type=resolved_type,
        points=tuple(points),
        total=total,
        show_percent=show_percent,
        section=distribution.section,
        subsection=distribution.subsection,
        description=_describe(distribution),
        metadata={
            "kind": distribution.kind,
            "total_invalid": distribution.total_invalid,
            "neutral_mode": neutral_mode,
        },
    )


def _resolve_chart_type(
    chart_type: ChartType | str | None,
    distribution: FieldDistribution,
    default: ChartType = ChartType.HORIZONTAL,
) -> ChartType:
    if chart_type is None:
        if distribution.kind == "histogram":
            return ChartType.VERTICAL
        return default

    resolved = _coerce_chart_type(chart_type)
    if resolved == ChartType.DONUT and distribution.kind == "histogram":
        raise ValueError("Donut charts are only supported for categorical fields.")
    return resolved


def _coerce_chart_type(chart_type: ChartType | str) -> ChartType:
    if isinstance(chart_type, ChartType):
        return chart_type
    try:
        return ChartType(str(chart_type).strip().lower())
    except ValueError as exc:
        raise ValueError(f"Unknown chart type: {chart_type}") from exc


def _percent(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(count / total * 100, 1)


def _describe(distribution: FieldDistribution) -> str:
    if distribution.kind == "histogram":
        return "Distribution of numeric answers."
    if distribution.kind == "multiselect":
        return "Selections per option; one response may select several options."
    return "Responses per option in configured order."


__all__ = [
    "ChartPoint",
    "ChartSeries",
    "ChartSeriesBuilder",
    "ChartType",
    "DAILY_SERIES_ID",
    "build_chart_series",
    "color_overrides",
    "should_use_neutral_mode",
]
