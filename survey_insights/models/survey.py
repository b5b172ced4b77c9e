from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, Iterable, Iterator, List, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Option(BaseModel):
    """One configured choice of a categorical, rating or multiselect field."""

    value: str
    label: str = ""
    color: str | None = None
    order: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _default_label(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("label") in (None, ""):
            return {**data, "label": data.get("value")}
        return data

    @field_validator("value", "label", mode="before")
    @classmethod
    def _stringify(cls, value: Union[str, int, float, None]) -> str:
        if value is None:
            return ""
        return str(value)


class _FieldBase(BaseModel):
    id: str
    label: str = ""
    order: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _default_label(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("label"):
            return {**data, "label": data.get("id")}
        return data

    @property
    def has_options(self) -> bool:
        return False


class _ChoiceFieldBase(_FieldBase):
    options: Tuple[Option, ...] = ()

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_options(cls, value: Iterable[Any] | None) -> Tuple[Any, ...]:
        if value is None:
            return ()
        if isinstance(value, (str, bytes)):
            raise ValueError("options must be provided as a sequence, not a single string")
        return tuple(value)

    @property
    def has_options(self) -> bool:
        return bool(self.options)

    @property
    def ordered_options(self) -> Tuple[Option, ...]:
        """Options in configuration order (stable sort on ``order``)."""

        return tuple(sorted(self.options, key=lambda option: option.order))


class CategoricalField(_ChoiceFieldBase):
    """Single-choice field (radio buttons or a select box)."""

    type: Literal["categorical", "radio", "select"] = "categorical"


class MultiSelectField(_ChoiceFieldBase):
    """Field where a respondent may pick several options."""

    type: Literal["multiselect", "multiselectdropdown"] = "multiselect"


class RatingField(_ChoiceFieldBase):
    """Single choice on an ordered rating scale."""

    type: Literal["rating"] = "rating"


class FreeTextField(_FieldBase):
    """Free-form textual answer."""

    type: Literal["free_text", "text", "textarea", "email", "name", "phone", "url"] = "free_text"


class NumericField(_FieldBase):
    """Numeric answer, summarized as a histogram."""

    type: Literal["number"] = "number"


FieldSchema = Annotated[
    Union[CategoricalField, MultiSelectField, RatingField, FreeTextField, NumericField],
    Field(discriminator="type"),
]


class Subsection(BaseModel):
    id: str
    title: str = ""
    order: int = 0
    fields: List[FieldSchema] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)


class Section(BaseModel):
    id: str
    title: str = ""
    order: int = 0
    fields: List[FieldSchema] = Field(default_factory=list)
    subsections: List[Subsection] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)


class SurveySchema(BaseModel):
    """Ordered survey configuration: sections, subsections and their fields."""

    id: str = "survey"
    title: str | None = None
    sections: List[Section] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)

    def iter_fields(self) -> Iterator[Tuple[Section, Subsection | None, FieldSchema]]:
        """Yield every field with its section and subsection in display order.

        Sections, subsections and fields are each sorted by ``order``; the
        fields placed directly on a section come before its subsections.
        """

        for section in sorted(self.sections, key=lambda item: item.order):
            for field in sorted(section.fields, key=lambda item: item.order):
                yield section, None, field
            for subsection in sorted(section.subsections, key=lambda item: item.order):
                for field in sorted(subsection.fields, key=lambda item: item.order):
                    yield section, subsection, field

    def field_by_id(self, field_id: str) -> FieldSchema | None:
        for _, _, field in self.iter_fields():
            if field.id == field_id:
                return field
        return None

    @classmethod
    def from_fields(cls, fields: Iterable[FieldSchema], *, section_id: str = "main") -> "SurveySchema":
        """Wrap a flat field list into a single-section schema."""

        return cls(sections=[Section(id=section_id, title=section_id, fields=list(fields))])


class ResponseRecord(BaseModel):
    """One respondent submission."""

    id: str
    field_values: Dict[str, Any] = Field(default_factory=dict, alias="responses")
    submitted_at: datetime = Field(alias="submittedAt")

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Union[str, int]) -> str:
        return str(value)

    @field_validator("field_values", mode="before")
    @classmethod
    def _default_values(cls, value: Dict[str, Any] | None) -> Dict[str, Any]:
        if value is None:
            return {}
        return value


__all__ = [
    "CategoricalField",
    "FieldSchema",
    "FreeTextField",
    "MultiSelectField",
    "NumericField",
    "Option",
    "RatingField",
    "ResponseRecord",
    "Section",
    "Subsection",
    "SurveySchema",
]
