from __future__ import annotations

import datetime as _dt
from datetime import date
from typing import Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALL = "all"

DistributionKind = Literal["categorical", "multiselect", "rating", "histogram"]


class AggregationFilters(BaseModel):
    """Conjunctive response filters; ``None`` or ``"all"`` means no restriction."""

    start_date: date | None = None
    end_date: date | None = None
    section: str | None = None
    subsection: str | None = None
    search: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _blank_date(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("section", "subsection", "search", mode="before")
    @classmethod
    def _normalise_scope(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = str(value).strip()
        if not cleaned or cleaned.lower() == ALL:
            return None
        return cleaned

    @property
    def has_inverted_range(self) -> bool:
        """Return True when both bounds are set and the start is after the end."""

        return self.start_date is not None and self.end_date is not None and self.start_date > self.end_date


class Bucket(BaseModel):
    label: str
    count: int
    value: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class FieldDistribution(BaseModel):
    """Bucketed counts for a single field, in configuration option order."""

    field_id: str
    field_label: str = ""
    kind: DistributionKind = "categorical"
    section: str | None = None
    subsection: str | None = None
    buckets: Tuple[Bucket, ...] = ()
    total_counted: int = 0
    total_invalid: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(bucket.label for bucket in self.buckets)

    @property
    def counts(self) -> Tuple[int, ...]:
        return tuple(bucket.count for bucket in self.buckets)

    def count_for(self, label: str) -> int:
        for bucket in self.buckets:
            if bucket.label == label:
                return bucket.count
        return 0


class FreeTextSummary(BaseModel):
    """Provided vs. empty counts for a free-text field."""

    field_id: str
    field_label: str = ""
    section: str | None = None
    subsection: str | None = None
    provided: int = 0
    empty: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)


class DailySeriesPoint(BaseModel):
    date: _dt.date
    count: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)


class AggregationTotals(BaseModel):
    total_responses: int = 0
    total_filtered: int = 0
    today_count: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)


class AggregationResult(BaseModel):
    """Everything a dashboard needs to draw one filtered view of a survey."""

    distributions: Tuple[FieldDistribution, ...] = ()
    text_summaries: Tuple[FreeTextSummary, ...] = ()
    daily_series: Tuple[DailySeriesPoint, ...] = ()
    totals: AggregationTotals = Field(default_factory=AggregationTotals)

    model_config = ConfigDict(extra="forbid", frozen=True)

    def distribution_for(self, field_id: str) -> FieldDistribution | None:
        for distribution in self.distributions:
            if distribution.field_id == field_id:
                return distribution
        return None


__all__ = [
    "ALL",
    "AggregationFilters",
    "AggregationResult",
    "AggregationTotals",
    "Bucket",
    "DailySeriesPoint",
    "DistributionKind",
    "FieldDistribution",
    "FreeTextSummary",
]
