from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("MPLBACKEND", "Agg")
os.environ.setdefault("ANALYTICS_THEME", "light")

from survey_insights.models.survey import ResponseRecord  # noqa: E402


def make_responses(rows: Iterable[tuple[str, dict[str, Any]]]) -> list[ResponseRecord]:
    """Build response records from ``(iso timestamp, field values)`` pairs."""

    return [
        ResponseRecord(id=f"r{index}", field_values=values, submitted_at=datetime.fromisoformat(timestamp))
        for index, (timestamp, values) in enumerate(rows, start=1)
    ]


@pytest.fixture
def responses_factory():
    return make_responses
