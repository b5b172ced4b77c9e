from __future__ import annotations


class SurveyInsightsError(Exception):
    """Base class for failures at the edges of the analytics core."""


class SurveyDataError(SurveyInsightsError):
    """Raised when survey schema or responses cannot be read or validated."""


class ChartExportError(SurveyInsightsError):
    """Raised by chart renderers when an image cannot be produced."""


__all__ = ["ChartExportError", "SurveyDataError", "SurveyInsightsError"]
