"""Analytics package: log phase reconstruction, time series and reports."""

from zkb_analytics.api import LogPhaseReconstructor, ReportCompiler, TimeSeriesAggregator

__all__ = ["LogPhaseReconstructor", "ReportCompiler", "TimeSeriesAggregator"]
