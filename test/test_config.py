from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from survey_insights.core.config import Settings
from survey_insights.core.logging import JsonFormatter, setup_logging

_ENV_KEYS = (
    "SURVEY_DATA_PATH",
    "ANALYTICS_THEME",
    "ANALYTICS_TIMEZONE",
    "CHART_EXPORT_FORMAT",
    "CHART_EXPORT_PIXEL_RATIO",
    "LOG_LEVEL",
    "LOG_JSON",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_defaults(clean_env: pytest.MonkeyPatch) -> None:
    current = Settings()

    assert current.survey_data_path.name == "sample_survey.json"
    assert current.survey_data_path.is_file()
    assert current.theme == "light"
    assert not current.is_dark_mode
    assert current.timezone is None
    assert current.export.image_format == "png"
    assert current.export.pixel_ratio == 2.0
    assert current.logging.level == "INFO"
    assert not current.logging.json_logs


def test_environment_overrides(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    clean_env.setenv("SURVEY_DATA_PATH", str(tmp_path / "export.json"))
    clean_env.setenv("ANALYTICS_THEME", " Dark ")
    clean_env.setenv("ANALYTICS_TIMEZONE", "Asia/Tokyo")
    clean_env.setenv("CHART_EXPORT_FORMAT", "SVG")
    clean_env.setenv("CHART_EXPORT_PIXEL_RATIO", "3")
    clean_env.setenv("LOG_LEVEL", "debug")
    clean_env.setenv("LOG_JSON", "true")

    current = Settings()

    assert current.survey_data_path == (tmp_path / "export.json").resolve()
    assert current.is_dark_mode
    assert current.timezone == "Asia/Tokyo"
    assert current.export.image_format == "svg"
    assert current.export.pixel_ratio == 3.0
    assert current.logging.level == "DEBUG"
    assert current.logging.json_logs


@pytest.mark.parametrize(
    "key, value",
    [
        ("ANALYTICS_THEME", "sepia"),
        ("CHART_EXPORT_FORMAT", "gif"),
        ("CHART_EXPORT_PIXEL_RATIO", "-1"),
        ("CHART_EXPORT_PIXEL_RATIO", "lots"),
    ],
)
def test_invalid_values_fall_back(clean_env: pytest.MonkeyPatch, key: str, value: str) -> None:
    clean_env.setenv(key, value)

    current = Settings()

    assert current.theme == "light"
    assert current.export.image_format == "png"
    assert current.export.pixel_ratio == 2.0


def test_json_formatter_includes_extras() -> None:
    record = logging.LogRecord("survey_insights.test", logging.INFO, __file__, 1, "exported %s", ("chart.png",), None)
    record.field_id = "overtime"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "survey_insights.test"
    assert payload["msg"] == "exported chart.png"
    assert payload["field_id"] == "overtime"


def test_setup_logging_replaces_root_handlers() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging("warning", json_logs=True)

        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
