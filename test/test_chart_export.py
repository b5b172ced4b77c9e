from __future__ import annotations

from datetime import datetime

import pytest

from survey_insights.core.errors import ChartExportError
from survey_insights.services.chart_export import (
    ChartExporter,
    ChartImageRenderer,
    MatplotlibChartRenderer,
    generate_chart_filename,
)
from survey_insights.services.charts import ChartPoint, ChartSeries, ChartType


class _StubRenderer:
    def __init__(self, payload: bytes = b"image-bytes", error: Exception | None = None) -> None:
        self._payload = payload
        self._error = error
        self.calls: list[dict[str, object]] = []

    def render(self, series: ChartSeries, *, image_format: str, pixel_ratio: float, background_color: str) -> bytes:
        self.calls.append(
            {
                "series": series,
                "image_format": image_format,
                "pixel_ratio": pixel_ratio,
                "background_color": background_color,
            }
        )
        if self._error is not None:
            raise self._error
        return self._payload


def _series(chart_type: ChartType = ChartType.HORIZONTAL, *, points: tuple[ChartPoint, ...] | None = None) -> ChartSeries:
    return ChartSeries(
        field_id="overtime",
        title="Worked overtime",
        chart_type=chart_type,
        points=points
        if points is not None
        else (
            ChartPoint(label="Yes", value=2.0, count=2, color="#16a34a"),
            ChartPoint(label="No", value=1.0, count=1, color="#ef4444"),
        ),
        total=3,
    )


def test_generate_chart_filename_slugs_every_part() -> None:
    name = generate_chart_filename(
        "Team Pulse!",
        datetime(2026, 10, 18, 9, 5, 3),
        section_title="Work  Load",
        subsection_title=None,
        field_label="Tools used",
    )

    assert name == "team_pulse_work_load_tools_used_20261018-090503"


def test_generate_chart_filename_keeps_dashes_and_underscores() -> None:
    assert generate_chart_filename("q-1_a", field_label="Score (1-5)") == "q-1_a_score_1-5"


def test_generate_chart_filename_falls_back_to_chart() -> None:
    assert generate_chart_filename(None) == "chart"
    assert generate_chart_filename("???", section_title="  ") == "chart"


def test_stub_satisfies_renderer_protocol() -> None:
    assert isinstance(_StubRenderer(), ChartImageRenderer)
    assert isinstance(MatplotlibChartRenderer(), ChartImageRenderer)


def test_export_success_returns_payload_and_filename() -> None:
    renderer = _StubRenderer()
    exporter = ChartExporter(renderer)

    result = exporter.export(_series(), "team_pulse_overtime", image_format="PNG", pixel_ratio=3)

    assert result.ok
    assert result.filename == "team_pulse_overtime.png"
    assert result.payload == b"image-bytes"
    assert result.error is None
    assert renderer.calls[0]["image_format"] == "png"
    assert renderer.calls[0]["pixel_ratio"] == 3


@pytest.mark.parametrize("is_dark_mode, expected", [(False, "#ffffff"), (True, "#1f2937")])
def test_export_background_follows_theme(is_dark_mode: bool, expected: str) -> None:
    renderer = _StubRenderer()

    ChartExporter(renderer, is_dark_mode=is_dark_mode).export(_series())

    assert renderer.calls[0]["background_color"] == expected


def test_explicit_background_wins() -> None:
    renderer = _StubRenderer()

    ChartExporter(renderer, is_dark_mode=True).export(_series(), background_color="#000000")

    assert renderer.calls[0]["background_color"] == "#000000"


def test_missing_filename_uses_default() -> None:
    result = ChartExporter(_StubRenderer()).export(_series(), "  ", image_format="svg")

    assert result.filename == "chart.svg"


def test_renderer_failure_is_reported_not_raised() -> None:
    renderer = _StubRenderer(error=ChartExportError("canvas exploded"))

    result = ChartExporter(renderer).export(_series(), "broken")

    assert not result.ok
    assert result.payload is None
    assert result.error == "canvas exploded"
    assert result.filename == "broken.png"


def test_empty_payload_is_a_failure() -> None:
    result = ChartExporter(_StubRenderer(payload=b"")).export(_series())

    assert not result.ok
    assert result.error


def test_unsupported_format_and_ratio_skip_renderer() -> None:
    renderer = _StubRenderer()
    exporter = ChartExporter(renderer)

    bad_format = exporter.export(_series(), image_format="gif")
    bad_ratio = exporter.export(_series(), pixel_ratio=0)

    assert not bad_format.ok
    assert "gif" in bad_format.error
    assert not bad_ratio.ok
    assert renderer.calls == []


def test_exporter_requires_renderer() -> None:
    with pytest.raises(ValueError):
        ChartExporter(None)  # type: ignore[arg-type]


@pytest.mark.parametrize("chart_type", list(ChartType))
def test_matplotlib_renderer_writes_png(chart_type: ChartType) -> None:
    payload = MatplotlibChartRenderer(width=3, height=2, base_dpi=50).render(
        _series(chart_type),
        image_format="png",
        pixel_ratio=1,
        background_color="#ffffff",
    )

    assert payload.startswith(b"\x89PNG")


def test_matplotlib_renderer_writes_svg_and_jpg() -> None:
    renderer = MatplotlibChartRenderer(width=3, height=2, base_dpi=50)

    svg = renderer.render(_series(), image_format="svg", pixel_ratio=1, background_color="#1f2937")
    jpg = renderer.render(_series(), image_format="jpg", pixel_ratio=1, background_color="#ffffff")

    assert b"<svg" in svg
    assert jpg.startswith(b"\xff\xd8")


def test_matplotlib_renderer_handles_empty_series() -> None:
    renderer = MatplotlibChartRenderer(width=3, height=2, base_dpi=50)

    payload = renderer.render(_series(points=()), image_format="png", pixel_ratio=1, background_color="#ffffff")

    assert payload.startswith(b"\x89PNG")


def test_end_to_end_export_with_matplotlib() -> None:
    result = ChartExporter(MatplotlibChartRenderer(width=3, height=2, base_dpi=50)).export(
        _series(ChartType.DONUT), generate_chart_filename("pulse", field_label="Overtime"), pixel_ratio=1
    )

    assert result.ok
    assert result.filename == "pulse_overtime.png"


@pytest.mark.parametrize("pixel_ratio", [None, "lots", float("nan"), float("inf"), -2, True])
def test_unusable_pixel_ratio_is_a_failed_result(pixel_ratio: object) -> None:
    renderer = _StubRenderer()

    result = ChartExporter(renderer).export(_series(), "ratio", pixel_ratio=pixel_ratio)  # type: ignore[arg-type]

    assert not result.ok
    assert result.filename == "ratio.png"
    assert "pixel_ratio" in result.error
    assert renderer.calls == []


def test_numeric_string_pixel_ratio_is_coerced() -> None:
    renderer = _StubRenderer()

    result = ChartExporter(renderer).export(_series(), pixel_ratio="1.5")  # type: ignore[arg-type]

    assert result.ok
    assert renderer.calls[0]["pixel_ratio"] == 1.5
