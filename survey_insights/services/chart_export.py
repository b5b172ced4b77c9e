from __future__ import annotations

import io
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from matplotlib.figure import Figure

from survey_insights.core.errors import ChartExportError
from survey_insights.services.charts import ChartSeries, ChartType
from survey_insights.services.palettes import DEFAULT_SCHEME, ColorScheme

logger = logging.getLogger(__name__)

IMAGE_FORMATS = ("png", "jpg", "svg")
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
_DEFAULT_FILENAME = "chart"
_DISALLOWED = re.compile(r"[^a-zA-Z0-9\s\-_]")
_WHITESPACE = re.compile(r"\s+")


def _slug(part: str | None) -> str:
    if not part:
        return ""
    cleaned = _DISALLOWED.sub("", str(part)).strip()
    return _WHITESPACE.sub("_", cleaned).lower()


def generate_chart_filename(
    instance: str | None,
    timestamp: datetime | None = None,
    *,
    section_title: str | None = None,
    subsection_title: str | None = None,
    field_label: str | None = None,
) -> str:
    """Return a filesystem-safe base name (no extension) for an exported chart.

    Each part keeps only letters, digits, whitespace, ``-`` and ``_``;
    whitespace runs become ``_`` and everything is lowercased. Empty parts are
    dropped and ``"chart"`` is returned when nothing is left.
    """

    parts = [_slug(part) for part in (instance, section_title, subsection_title, field_label)]
    if timestamp is not None:
        parts.append(timestamp.strftime(TIMESTAMP_FORMAT))
    return "_".join(part for part in parts if part) or _DEFAULT_FILENAME


@runtime_checkable
class ChartImageRenderer(Protocol):
    """Rasterizes an already-built chart series."""

    def render(
        self,
        series: ChartSeries,
        *,
        image_format: str,
        pixel_ratio: float,
        background_color: str,
    ) -> bytes:
        """Return the encoded image bytes for ``series``."""


@dataclass(frozen=True)
class ExportResult:
    ok: bool
    filename: str
    payload: bytes | None = None
    error: str | None = None


class ChartExporter:
    """Name an export and hand the drawing over to a renderer."""

    def __init__(
        self,
        renderer: ChartImageRenderer,
        *,
        is_dark_mode: bool = False,
        scheme: ColorScheme = DEFAULT_SCHEME,
    ) -> None:
        if renderer is None:
            raise ValueError("renderer must be provided")
        self._renderer = renderer
        self._default_background = scheme.theme(is_dark_mode).surface

    def export(
        self,
        series: ChartSeries,
        filename: str | None = None,
        *,
        image_format: str = "png",
        pixel_ratio: float = 2,
        background_color: str | None = None,
    ) -> ExportResult:
        """Render ``series`` and report whether an image was produced."""

        target_format = str(image_format or "").strip().lower()
        base_name = str(filename or "").strip() or _DEFAULT_FILENAME
        full_name = f"{base_name}.{target_format or 'png'}"

        if target_format not in IMAGE_FORMATS:
            logger.warning("Unsupported chart export format %r for %s", image_format, base_name)
            return ExportResult(ok=False, filename=full_name, error=f"Unsupported image format: {image_format}")
        ratio = _positive_ratio(pixel_ratio)
        if ratio is None:
            logger.warning("Invalid pixel ratio %r for %s", pixel_ratio, full_name)
            return ExportResult(ok=False, filename=full_name, error="pixel_ratio must be a positive number")

        try:
            payload = self._renderer.render(
                series,
                image_format=target_format,
                pixel_ratio=ratio,
                background_color=background_color or self._default_background,
            )
        except Exception as exc:  # renderer is an external collaborator
            logger.exception("Failed to export chart %s", full_name)
            return ExportResult(ok=False, filename=full_name, error=str(exc) or exc.__class__.__name__)

        if not payload:
            logger.warning("Chart renderer returned no bytes for %s", full_name)
            return ExportResult(ok=False, filename=full_name, error="Renderer returned an empty image")

        logger.info("Chart saved as %s", full_name)
        return ExportResult(ok=True, filename=full_name, payload=payload)


def _positive_ratio(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        ratio = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return None
    return ratio if math.isfinite(ratio) and ratio > 0 else None


class MatplotlibChartRenderer:
    """Chart renderer backed by matplotlib's non-interactive Agg canvas."""

    def __init__(self, *, width: float = 6.4, height: float = 4.0, base_dpi: int = 100) -> None:
        self._size = (width, height)
        self._base_dpi = base_dpi

    def render(
        self,
        series: ChartSeries,
        *,
        image_format: str,
        pixel_ratio: float,
        background_color: str,
    ) -> bytes:
        figure = Figure(figsize=self._size, facecolor=background_color)
        axes = figure.add_subplot(1, 1, 1)
        axes.set_facecolor(background_color)
        self._draw(axes, series)
        axes.set_title(series.title)

        buffer = io.BytesIO()
        save_format = "jpeg" if image_format == "jpg" else image_format
        try:
            figure.savefig(
                buffer,
                format=save_format,
                dpi=self._base_dpi * pixel_ratio,
                facecolor=background_color,
                bbox_inches="tight",
            )
        except (ValueError, OSError) as exc:
            raise ChartExportError(f"matplotlib could not write {image_format}: {exc}") from exc
        return buffer.getvalue()

    @staticmethod
    def _draw(axes, series: ChartSeries) -> None:
        labels = list(series.labels)
        values = list(series.values)
        colors = list(series.colors)

        if not labels:
            axes.text(0.5, 0.5, "No data", ha="center", va="center", transform=axes.transAxes)
            axes.set_axis_off()
            return

        if series.chart_type == ChartType.DONUT:
            if sum(values) <= 0:
                axes.text(0.5, 0.5, "No responses", ha="center", va="center", transform=axes.transAxes)
                axes.set_axis_off()
                return
            axes.pie(values, labels=labels, colors=colors, wedgeprops={"width": 0.4}, startangle=90)
            axes.set_aspect("equal")
            return

        if series.chart_type == ChartType.VERTICAL:
            axes.bar(labels, values, color=colors)
            axes.tick_params(axis="x", labelrotation=45)
        else:
            positions = range(len(labels))
            axes.barh(list(positions), values, color=colors)
            axes.set_yticks(list(positions), labels=labels)
            axes.invert_yaxis()
        if series.show_percent:
            if series.chart_type == ChartType.HORIZONTAL:
                axes.set_xlabel("%")
            else:
                axes.set_ylabel("%")


__all__ = [
    "ChartExporter",
    "ChartImageRenderer",
    "ExportResult",
    "IMAGE_FORMATS",
    "MatplotlibChartRenderer",
    "generate_chart_filename",
]
