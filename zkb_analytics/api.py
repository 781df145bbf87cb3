"""Public API surface for zkb_analytics."""

from zkb_analytics.log_phases import (
    LOG_LAYOUTS,
    LogEntry,
    LogLayout,
    LogPhaseReconstructor,
    decode_log,
    detect_curve,
    get_layout,
)
from zkb_analytics.report import ReportCompiler, ReportSet, allocate_output_dir
from zkb_analytics.timeseries import (
    EMPTY_WINDOW,
    Integral,
    TimeSeriesAggregator,
    WindowStats,
    integrate,
    window_average,
    window_is_empty,
    window_max,
)

__all__ = [
    "EMPTY_WINDOW",
    "Integral",
    "LOG_LAYOUTS",
    "LogEntry",
    "LogLayout",
    "LogPhaseReconstructor",
    "ReportCompiler",
    "ReportSet",
    "TimeSeriesAggregator",
    "WindowStats",
    "allocate_output_dir",
    "decode_log",
    "detect_curve",
    "get_layout",
    "integrate",
    "window_average",
    "window_is_empty",
    "window_max",
]
