from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from conftest import PROJECT_ROOT
from survey_insights.API.survey_data_provider import JsonSurveyDataProvider
from survey_insights.core.errors import SurveyDataError, SurveyInsightsError
from survey_insights.models.analytics import AggregationFilters
from survey_insights.services.aggregation import aggregate


def _write(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "survey.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_loads_schema_and_responses(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        {
            "schema": {
                "id": "mini",
                "sections": [
                    {
                        "id": "s1",
                        "fields": [
                            {"id": "q1", "type": "radio", "options": [{"value": "a"}, {"value": "b"}]},
                            {"id": "q2", "type": "email"},
                        ],
                    }
                ],
            },
            "responses": [{"id": 7, "submittedAt": "2026-10-18T10:00:00", "responses": {"q1": "a"}}],
        },
    )
    provider = JsonSurveyDataProvider(path)

    schema = provider.get_schema()
    responses = provider.get_responses()

    assert [field.id for _, _, field in schema.iter_fields()] == ["q1", "q2"]
    assert schema.field_by_id("q1").type == "radio"
    assert responses[0].id == "7"
    assert responses[0].field_values == {"q1": "a"}


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(SurveyDataError):
        JsonSurveyDataProvider(tmp_path / "absent.json").get_schema()


def test_invalid_json_raises(tmp_path: Path) -> None:
    path = tmp_path / "survey.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(SurveyDataError, match="not valid JSON"):
        JsonSurveyDataProvider(path).get_responses()


def test_non_object_payload_raises(tmp_path: Path) -> None:
    with pytest.raises(SurveyDataError):
        JsonSurveyDataProvider(_write(tmp_path, [1, 2, 3])).get_schema()


def test_schema_validation_errors_are_wrapped(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        {"schema": {"sections": [{"id": "s", "fields": [{"id": "q", "type": "hologram"}]}]}, "responses": []},
    )

    with pytest.raises(SurveyInsightsError, match="survey export format"):
        JsonSurveyDataProvider(path).get_schema()


def test_response_without_timestamp_is_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, {"schema": {}, "responses": [{"id": "r1", "responses": {}}]})

    with pytest.raises(SurveyDataError):
        JsonSurveyDataProvider(path).get_responses()


def test_returned_response_list_is_a_copy(tmp_path: Path) -> None:
    path = _write(tmp_path, {"schema": {}, "responses": [{"id": "r1", "submittedAt": "2026-10-18T10:00:00"}]})
    provider = JsonSurveyDataProvider(path)

    provider.get_responses().clear()

    assert len(provider.get_responses()) == 1


def test_bundled_sample_aggregates() -> None:
    provider = JsonSurveyDataProvider(PROJECT_ROOT / "survey_insights" / "data" / "sample_survey.json")
    schema = provider.get_schema()

    result = aggregate(
        schema,
        provider.get_responses(),
        AggregationFilters(start_date=date(2026, 10, 12), end_date=date(2026, 10, 18)),
        today=date(2026, 10, 16),
    )

    workload = result.distribution_for("workload_level")
    assert workload.labels == ("Low", "Medium", "High")
    assert workload.counts == (1, 3, 2)
    assert workload.total_invalid == 1
    assert result.distribution_for("overtime").total_invalid == 1
    assert result.distribution_for("hours_slept").kind == "histogram"
    assert result.totals.total_responses == 7
    assert result.totals.today_count == 2
    assert len(result.daily_series) == 7


def test_undecodable_file_is_a_data_error(tmp_path: Path) -> None:
    path = tmp_path / "survey.json"
    path.write_bytes(b'{"schema": {"id": "\xff"}, "responses": []}')

    with pytest.raises(SurveyDataError, match="Could not read"):
        JsonSurveyDataProvider(path).get_schema()


def test_unreadable_file_is_a_data_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path, {"schema": {}, "responses": []})

    def _refuse(self: Path, *args: object, **kwargs: object) -> str:
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "read_text", _refuse)

    with pytest.raises(SurveyDataError, match="denied"):
        JsonSurveyDataProvider(path).get_responses()
