from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

_DEFAULT_DATA_PATH = Path(__file__).resolve().parents[1] / "data" / "sample_survey.json"
_EXPORT_FORMATS = ("png", "jpg", "svg")
_THEMES = ("light", "dark")


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _choice_or_default(value: Optional[str], choices: tuple[str, ...], default: str) -> str:
    cleaned = _strip_or_none(value)
    if cleaned is None:
        return default
    lowered = cleaned.lower()
    return lowered if lowered in choices else default


def _positive_float_or_default(value: Optional[str], default: float) -> float:
    cleaned = _strip_or_none(value)
    if cleaned is None:
        return default
    try:
        parsed = float(cleaned)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _flag(value: Optional[str]) -> bool:
    cleaned = _strip_or_none(value)
    return bool(cleaned) and cleaned.lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ExportSettings:
    image_format: str
    pixel_ratio: float


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    json_logs: bool


class Settings:

    def __init__(self) -> None:
        data_path = _strip_or_none(os.getenv("SURVEY_DATA_PATH"))
        self.survey_data_path = Path(data_path).expanduser().resolve() if data_path else _DEFAULT_DATA_PATH

        self.theme = _choice_or_default(os.getenv("ANALYTICS_THEME"), _THEMES, "light")
        self.timezone = _strip_or_none(os.getenv("ANALYTICS_TIMEZONE"))

        self.export = ExportSettings(
            image_format=_choice_or_default(os.getenv("CHART_EXPORT_FORMAT"), _EXPORT_FORMATS, "png"),
            pixel_ratio=_positive_float_or_default(os.getenv("CHART_EXPORT_PIXEL_RATIO"), 2.0),
        )

        self.logging = LoggingSettings(
            level=(_strip_or_none(os.getenv("LOG_LEVEL")) or "INFO").upper(),
            json_logs=_flag(os.getenv("LOG_JSON")),
        )

    @property
    def is_dark_mode(self) -> bool:
        return self.theme == "dark"


settings = Settings()
