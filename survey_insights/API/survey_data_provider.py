from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from pydantic import TypeAdapter, ValidationError

from survey_insights.core.config import settings
from survey_insights.core.errors import SurveyDataError
from survey_insights.models.survey import ResponseRecord, SurveySchema

_RESPONSES_ADAPTER = TypeAdapter(List[ResponseRecord])


class SurveyDataProvider(Protocol):
    """Read-only access to a survey's configuration and its submissions."""

    def get_schema(self) -> SurveySchema: ...

    def get_responses(self) -> List[ResponseRecord]: ...


class JsonSurveyDataProvider(SurveyDataProvider):
    """Serve a survey export stored as ``{"schema": {...}, "responses": [...]}``."""

    def __init__(self, source: str | Path) -> None:
        self._path = Path(source)
        self._lock = threading.Lock()
        self._cache: Optional[Tuple[float, SurveySchema, List[ResponseRecord]]] = None

    @property
    def path(self) -> Path:
        return self._path

    def get_schema(self) -> SurveySchema:
        return self._load()[0]

    def get_responses(self) -> List[ResponseRecord]:
        return list(self._load()[1])

    def _load(self) -> Tuple[SurveySchema, List[ResponseRecord]]:
        if not self._path.is_file():
            raise SurveyDataError(f"Survey data file not found: {self._path}")

        try:
            modified = self._path.stat().st_mtime
        except OSError as exc:
            raise SurveyDataError(f"Could not read survey data from {self._path}: {exc}") from exc
        with self._lock:
            if self._cache is not None and self._cache[0] == modified:
                return self._cache[1], self._cache[2]
            schema, responses = self._parse(self._read_payload())
            self._cache = (modified, schema, responses)
        return schema, responses

    def _read_payload(self) -> Dict[str, Any]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SurveyDataError(f"Could not read survey data from {self._path}: {exc}") from exc
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SurveyDataError(f"{self._path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise SurveyDataError(f"{self._path} must contain a JSON object")
        return payload

    def _parse(self, payload: Dict[str, Any]) -> Tuple[SurveySchema, List[ResponseRecord]]:
        try:
            schema = SurveySchema.model_validate(payload.get("schema") or {})
            responses = _RESPONSES_ADAPTER.validate_python(payload.get("responses") or [])
        except ValidationError as exc:
            raise SurveyDataError(f"{self._path} does not match the survey export format: {exc}") from exc
        return schema, responses


_PROVIDER_INSTANCE: Optional[SurveyDataProvider] = None
_PROVIDER_LOCK = threading.Lock()


def get_survey_data_provider() -> SurveyDataProvider:
    """Return the shared provider for the configured survey export."""

    global _PROVIDER_INSTANCE
    if _PROVIDER_INSTANCE is None:
        with _PROVIDER_LOCK:
            if _PROVIDER_INSTANCE is None:
                _PROVIDER_INSTANCE = JsonSurveyDataProvider(settings.survey_data_path)
    return _PROVIDER_INSTANCE


__all__ = [
    "JsonSurveyDataProvider",
    "SurveyDataProvider",
    "get_survey_data_provider",
]
