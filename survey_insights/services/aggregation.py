from __future__ import annotations

import csv
import io
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from survey_insights.models.analytics import (
    AggregationFilters,
    AggregationResult,
    AggregationTotals,
    Bucket,
    DailySeriesPoint,
    FieldDistribution,
    FreeTextSummary,
)
from survey_insights.models.survey import (
    CategoricalField,
    FieldSchema,
    FreeTextField,
    MultiSelectField,
    NumericField,
    Option,
    RatingField,
    ResponseRecord,
    Section,
    Subsection,
    SurveySchema,
)
from survey_insights.services.colors import normalize_key

logger = logging.getLogger(__name__)

HISTOGRAM_BUCKETS = 10
QUICK_RANGES = ("all", "7d", "30d", "month", "custom")
CSV_HEADER = ("Section", "Field", "Value", "Count")

_MISSING = object()
_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class ScopedField:
    """A field together with the section and subsection it is displayed in."""

    section: Section
    subsection: Subsection | None
    field: FieldSchema

    @property
    def response_keys(self) -> Tuple[str, ...]:
        """Keys under which a response may store this field's value.

        Older exports keyed answers by section title and field label instead
        of the field id; those spellings are tried after the id.
        """

        section_title = self.section.title or self.section.id
        field_label = self.field.label
        section_slug = _SLUG_SEPARATORS.sub("_", section_title.lower())
        field_slug = _SLUG_SEPARATORS.sub("_", field_label.lower())
        keys = [
            self.field.id,
            f"{section_title} {field_label}",
            f"{section_title} - {field_label}",
            f"{section_slug}_{field_slug}",
            f"{section_slug}-{field_slug}",
            f"{section_slug} {field_slug}",
        ]
        return tuple(dict.fromkeys(keys))

    def raw_value(self, record: ResponseRecord) -> Any:
        values = record.field_values
        for key in self.response_keys:
            if key in values:
                return values[key]
        return _MISSING


class _OptionMatcher:
    """Map raw response values onto configured options."""

    def __init__(self, options: Sequence[Option]) -> None:
        self.options = tuple(options)
        self._by_value: Dict[str, int] = {}
        self._by_key: Dict[str, int] = {}
        self._by_label: Dict[str, int] = {}
        for index, option in enumerate(self.options):
            self._by_value.setdefault(option.value, index)
            self._by_key.setdefault(normalize_key(option.value), index)
            self._by_label.setdefault(normalize_key(option.label), index)

    def match(self, raw: Any) -> int | None:
        if raw is None or raw is _MISSING or isinstance(raw, (list, tuple, set, frozenset, dict)):
            return None
        if isinstance(raw, float) and raw.is_integer():
            raw = int(raw)
        text = str(raw)
        if text in self._by_value:
            return self._by_value[text]
        key = normalize_key(text)
        if not key:
            return None
        if key in self._by_key:
            return self._by_key[key]
        return self._by_label.get(key)

    def buckets(self, counts: Counter) -> Tuple[Bucket, ...]:
        return tuple(
            Bucket(label=option.label, value=option.value, count=counts.get(index, 0))
            for index, option in enumerate(self.options)
        )


class ResponseAggregator:
    """Turn a survey schema and its responses into chart-ready distributions."""

    def __init__(self, schema: SurveySchema, *, tz: tzinfo | None = None) -> None:
        if schema is None:
            raise ValueError("schema must be provided")
        self._schema = schema
        self._tz = tz

    def aggregate(
        self,
        responses: Iterable[ResponseRecord],
        filters: AggregationFilters | None = None,
        *,
        today: date | None = None,
    ) -> AggregationResult:
        """Return distributions, the daily series and totals for one filtered view."""

        active = filters or AggregationFilters()
        records = list(responses or ())
        scoped = self.scoped_fields(active)

        if active.has_inverted_range:
            logger.debug(
                "Start date %s is after end date %s; treating the range as empty",
                active.start_date,
                active.end_date,
            )

        searchable = [item for item in scoped if isinstance(item.field, FreeTextField)]
        matching = [record for record in records if self._matches_search(record, searchable, active.search)]
        filtered = [record for record in matching if self._in_date_range(record, active)]

        reference_day = today or self._today()
        today_count = sum(1 for record in matching if self._day_of(record) == reference_day)

        distributions: List[FieldDistribution] = []
        summaries: List[FreeTextSummary] = []
        for item in scoped:
            field = item.field
            if isinstance(field, FreeTextField):
                summaries.append(self._summarise_free_text(item, filtered))
            elif isinstance(field, MultiSelectField):
                distributions.append(self._count_multi_select(item, filtered))
            elif isinstance(field, NumericField):
                distributions.append(self._histogram(item, filtered))
            else:
                distributions.append(self._count_single_select(item, filtered))

        return AggregationResult(
            distributions=tuple(distributions),
            text_summaries=tuple(summaries),
            daily_series=tuple(self.daily_series(filtered, active)),
            totals=AggregationTotals(
                total_responses=len(records),
                total_filtered=len(filtered),
                today_count=today_count,
            ),
        )

    def scoped_fields(self, filters: AggregationFilters | None = None) -> List[ScopedField]:
        """Return the schema fields left after the section/subsection filters."""

        active = filters or AggregationFilters()
        scoped: List[ScopedField] = []
        for section, subsection, field in self._schema.iter_fields():
            if active.section and not _matches_reference(active.section, section.id, section.title):
                continue
            if active.subsection and (
                subsection is None
                or not _matches_reference(active.subsection, subsection.id, subsection.title)
            ):
                continue
            scoped.append(ScopedField(section=section, subsection=subsection, field=field))
        return scoped

    def daily_series(
        self,
        records: Sequence[ResponseRecord],
        filters: AggregationFilters | None = None,
    ) -> List[DailySeriesPoint]:
        """Contiguous, zero-filled submission counts per calendar day.

        Bounds come from the filter where given and from the earliest/latest
        submission otherwise. An inverted or unresolvable range yields ``[]``.
        """

        active = filters or AggregationFilters()
        per_day = Counter(self._day_of(record) for record in records)
        start = active.start_date or (min(per_day) if per_day else None)
        end = active.end_date or (max(per_day) if per_day else None)
        if start is None or end is None or start > end:
            return []

        points: List[DailySeriesPoint] = []
        for offset in range((end - start).days + 1):
            day = start + timedelta(days=offset)
            points.append(DailySeriesPoint(date=day, count=per_day.get(day, 0)))
        return points

    def _today(self) -> date:
        if self._tz is not None:
            return datetime.now(self._tz).date()
        return date.today()

    def _day_of(self, record: ResponseRecord) -> date:
        timestamp: datetime = record.submitted_at
        if self._tz is not None and timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(self._tz)
        return timestamp.date()

    def _in_date_range(self, record: ResponseRecord, filters: AggregationFilters) -> bool:
        if filters.start_date is None and filters.end_date is None:
            return True
        day = self._day_of(record)
        if filters.start_date is not None and day < filters.start_date:
            return False
        if filters.end_date is not None and day > filters.end_date:
            return False
        return True

    @staticmethod
    def _matches_search(record: ResponseRecord, searchable: Sequence[ScopedField], term: str | None) -> bool:
        if not term:
            return True
        needle = term.lower()
        for item in searchable:
            for text in _text_values(item.raw_value(record)):
                if needle in text.lower():
                    return True
        return False

    @staticmethod
    def _count_single_select(item: ScopedField, records: Sequence[ResponseRecord]) -> FieldDistribution:
        field = item.field
        matcher = _OptionMatcher(field.ordered_options)
        counts: Counter = Counter()
        invalid = 0
        for record in records:
            index = matcher.match(item.raw_value(record))
            if index is None:
                invalid += 1
                continue
            counts[index] += 1

        if invalid:
            logger.debug("Field %s: %d responses without a configured option", field.id, invalid)
        return _distribution(item, _kind_of(field), matcher.buckets(counts), invalid)

    @staticmethod
    def _count_multi_select(item: ScopedField, records: Sequence[ResponseRecord]) -> FieldDistribution:
        field = item.field
        matcher = _OptionMatcher(field.ordered_options)
        counts: Counter = Counter()
        invalid = 0
        for record in records:
            selections = _selection_list(item.raw_value(record))
            if not selections:
                invalid += 1
                continue
            matched = set()
            for selection in selections:
                index = matcher.match(selection)
                if index is None:
                    invalid += 1
                else:
                    matched.add(index)
            counts.update(matched)

        if invalid:
            logger.debug("Field %s: %d missing or unknown selections", field.id, invalid)
        return _distribution(item, "multiselect", matcher.buckets(counts), invalid)

    @staticmethod
    def _histogram(item: ScopedField, records: Sequence[ResponseRecord]) -> FieldDistribution:
        values: List[float] = []
        invalid = 0
        for record in records:
            number = _as_number(item.raw_value(record))
            if number is None:
                invalid += 1
            else:
                values.append(number)
        return _distribution(item, "histogram", histogram_buckets(values), invalid)

    @staticmethod
    def _summarise_free_text(item: ScopedField, records: Sequence[ResponseRecord]) -> FreeTextSummary:
        provided = sum(1 for record in records if any(text.strip() for text in _text_values(item.raw_value(record))))
        return FreeTextSummary(
            field_id=item.field.id,
            field_label=item.field.label,
            section=item.section.title or item.section.id,
            subsection=(item.subsection.title or item.subsection.id) if item.subsection else None,
            provided=provided,
            empty=len(records) - provided,
        )


def histogram_buckets(values: Sequence[float], bucket_count: int = HISTOGRAM_BUCKETS) -> Tuple[Bucket, ...]:
    """Equal-width buckets between the smallest and largest value.

    Labels are ``"{from}-{to}"`` with both ends rounded half up; buckets whose
    rounded labels coincide are merged.
    """

    values = [value for value in values if math.isfinite(value)]
    if not values:
        return ()
    low, high = min(values), max(values)
    # Work on halved values when the span itself overflows a float.
    scale = 1.0 if math.isfinite(high - low) else 2.0
    base = low / scale
    width = (high / scale - base) or 1

    def edge(fraction: float) -> int:
        position = (base + fraction * width) * scale
        return _round_half_up(position if math.isfinite(position) else high)

    def label(index: int) -> str:
        return f"{edge(index / bucket_count)}-{edge((index + 1) / bucket_count)}"

    counts: Dict[str, int] = {label(index): 0 for index in range(bucket_count)}
    for value in values:
        index = min(bucket_count - 1, math.floor(((value / scale - base) / width) * bucket_count))
        counts[label(index)] += 1
    return tuple(Bucket(label=name, count=count) for name, count in counts.items())


def quick_range(name: str, today: date | None = None) -> Tuple[date | None, date | None]:
    """Return the ``(start_date, end_date)`` pair for a named preset."""

    cleaned = (name or "").strip().lower()
    if cleaned not in QUICK_RANGES:
        raise ValueError(f"Unknown quick range: {name}")

    end = today or date.today()
    if cleaned == "7d":
        return end - timedelta(days=6), end
    if cleaned == "30d":
        return end - timedelta(days=29), end
    if cleaned == "month":
        return end.replace(day=1), end
    return None, None


def to_csv_rows(result: AggregationResult) -> List[Tuple[str, str, str, int | str]]:
    rows: List[Tuple[str, str, str, int | str]] = [CSV_HEADER]
    for distribution in result.distributions:
        for bucket in distribution.buckets:
            rows.append(
                (distribution.section or "", distribution.field_label, bucket.value or bucket.label, bucket.count)
            )
    return rows


def to_csv(result: AggregationResult) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerows(to_csv_rows(result))
    return buffer.getvalue()


def aggregate(
    schema: SurveySchema,
    responses: Iterable[ResponseRecord],
    filters: AggregationFilters | None = None,
    *,
    today: date | None = None,
    tz: tzinfo | None = None,
) -> AggregationResult:
    """Aggregate ``responses`` against ``schema`` under ``filters``."""

    return ResponseAggregator(schema, tz=tz).aggregate(responses, filters, today=today)


def _distribution(item: ScopedField, kind: str, buckets: Tuple[Bucket, ...], invalid: int) -> FieldDistribution:
    return FieldDistribution(
        field_id=item.field.id,
        field_label=item.field.label,
        kind=kind,
        section=item.section.title or item.section.id,
        subsection=(item.subsection.title or item.subsection.id) if item.subsection else None,
        buckets=buckets,
        total_counted=sum(bucket.count for bucket in buckets),
        total_invalid=invalid,
    )


def _kind_of(field: FieldSchema) -> str:
    if isinstance(field, RatingField):
        return "rating"
    if isinstance(field, CategoricalField):
        return "categorical"
    return field.type


def _matches_reference(reference: str, *candidates: str | None) -> bool:
    target = normalize_key(reference)
    return any(candidate is not None and normalize_key(candidate) == target for candidate in candidates)


def _selection_list(raw: Any) -> List[Any]:
    if raw is None or raw is _MISSING:
        return []
    if isinstance(raw, (list, tuple, set, frozenset)):
        return [item for item in raw if item is not None and str(item).strip()]
    if isinstance(raw, dict):
        return []
    return [raw] if str(raw).strip() else []


def _text_values(raw: Any) -> List[str]:
    if raw is None or raw is _MISSING:
        return []
    if isinstance(raw, (list, tuple, set, frozenset)):
        return [str(item) for item in raw if item is not None]
    return [str(raw)]


def _as_number(raw: Any) -> float | None:
    if raw is None or raw is _MISSING or isinstance(raw, bool):
        return None
    try:
        number = float(raw) if isinstance(raw, (int, float)) else float(str(raw).strip())
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


__all__ = [
    "CSV_HEADER",
    "HISTOGRAM_BUCKETS",
    "QUICK_RANGES",
    "ResponseAggregator",
    "ScopedField",
    "aggregate",
    "histogram_buckets",
    "quick_range",
    "to_csv",
    "to_csv_rows",
]
