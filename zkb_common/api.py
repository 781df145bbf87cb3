"""Public API surface for zkb_common."""

from zkb_common.errors import (
    ConfigurationError,
    DegenerateWindowError,
    LogTruncatedError,
    MetricCollectionError,
    OutputParseError,
    ResultPersistenceError,
    WorkloadError,
    ZKBError,
)
from zkb_common.logging import configure_logging

__all__ = [
    "configure_logging",
    "ConfigurationError",
    "DegenerateWindowError",
    "LogTruncatedError",
    "MetricCollectionError",
    "OutputParseError",
    "ResultPersistenceError",
    "WorkloadError",
    "ZKBError",
]
