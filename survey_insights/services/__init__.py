from .aggregation import ResponseAggregator, aggregate, quick_range
from .chart_export import ChartExporter, ExportResult, MatplotlibChartRenderer, generate_chart_filename
from .charts import ChartSeries, ChartSeriesBuilder, ChartType, build_chart_series
from .colors import compute_color_for_label, hash_salt_from

__all__ = [
    "ChartExporter",
    "ChartSeries",
    "ChartSeriesBuilder",
    "ChartType",
    "ExportResult",
    "MatplotlibChartRenderer",
    "ResponseAggregator",
    "aggregate",
    "build_chart_series",
    "compute_color_for_label",
    "generate_chart_filename",
    "hash_salt_from",
    "quick_range",
]
