from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from survey_insights.models.analytics import AggregationFilters
from survey_insights.models.survey import (
    CategoricalField,
    FreeTextField,
    MultiSelectField,
    NumericField,
    Option,
    RatingField,
    ResponseRecord,
    SurveySchema,
)


def test_fields_are_parsed_by_type() -> None:
    schema = SurveySchema.model_validate(
        {
            "sections": [
                {
                    "id": "s",
                    "fields": [
                        {"id": "a", "type": "select", "options": [{"value": "x"}]},
                        {"id": "b", "type": "multiselectdropdown", "options": []},
                        {"id": "c", "type": "rating", "options": [{"value": 1}]},
                        {"id": "d", "type": "textarea"},
                        {"id": "e", "type": "number"},
                    ],
                }
            ]
        }
    )

    kinds = [type(field) for _, _, field in schema.iter_fields()]
    assert kinds == [CategoricalField, MultiSelectField, RatingField, FreeTextField, NumericField]


def test_unknown_field_type_is_rejected() -> None:
    with pytest.raises(ValidationError):
        SurveySchema.model_validate({"sections": [{"id": "s", "fields": [{"id": "a", "type": "slider"}]}]})


def test_labels_default_to_identifiers() -> None:
    option = Option(value=3)
    field = RatingField(id="score", options=[option])

    assert option.value == "3"
    assert option.label == "3"
    assert field.label == "score"
    assert field.has_options
    assert not FreeTextField(id="notes").has_options


def test_options_must_be_a_sequence() -> None:
    with pytest.raises(ValidationError):
        CategoricalField(id="q", options="yes,no")


def test_ordered_options_is_stable() -> None:
    field = CategoricalField(
        id="q",
        options=[Option(value="b", order=1), Option(value="a", order=0), Option(value="c", order=1)],
    )

    assert [option.value for option in field.ordered_options] == ["a", "b", "c"]


def test_iter_fields_places_section_fields_before_subsections() -> None:
    schema = SurveySchema.model_validate(
        {
            "sections": [
                {
                    "id": "late",
                    "order": 2,
                    "fields": [{"id": "z", "type": "text"}],
                },
                {
                    "id": "early",
                    "order": 1,
                    "subsections": [{"id": "sub", "fields": [{"id": "y", "type": "text"}]}],
                    "fields": [{"id": "x2", "type": "text", "order": 2}, {"id": "x1", "type": "text", "order": 1}],
                },
            ]
        }
    )

    rows = [(section.id, subsection.id if subsection else None, field.id) for section, subsection, field in schema.iter_fields()]

    assert rows == [("early", None, "x1"), ("early", None, "x2"), ("early", "sub", "y"), ("late", None, "z")]
    assert schema.field_by_id("y").id == "y"
    assert schema.field_by_id("missing") is None


def test_response_record_accepts_export_aliases() -> None:
    record = ResponseRecord.model_validate(
        {"id": 12, "submittedAt": "2026-10-18T08:30:00+02:00", "responses": {"q": "a"}}
    )

    assert record.id == "12"
    assert record.field_values == {"q": "a"}
    assert record.submitted_at.utcoffset().total_seconds() == 7200
    assert ResponseRecord.model_validate({"id": "x", "submittedAt": "2026-10-18T08:30:00", "responses": None}).field_values == {}


def test_filters_normalise_all_and_blank_values() -> None:
    filters = AggregationFilters(section=" All ", subsection="", search="  ", start_date="", end_date="2026-10-18")

    assert filters.section is None
    assert filters.subsection is None
    assert filters.search is None
    assert filters.start_date is None
    assert filters.end_date == date(2026, 10, 18)
    assert not filters.has_inverted_range


def test_models_are_immutable() -> None:
    option = Option(value="a")

    with pytest.raises(ValidationError):
        option.label = "b"  # type: ignore[misc]
