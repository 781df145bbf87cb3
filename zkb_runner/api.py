"""Public API surface for zkb_runner."""

from zkb_runner.engine.runner import BenchmarkRunner, Workload
from zkb_runner.metric_collectors import (
    HardwareReader,
    HardwareSampler,
    SamplerSession,
    create_reader,
)
from zkb_runner.models.config import BenchmarkConfig, SamplerConfig
from zkb_runner.models.timings import (
    BenchmarkRun,
    CircuitInfo,
    HardwareReading,
    RecordedRun,
    RunTimings,
    Sample,
    SamplerFailure,
    SamplerResult,
    load_samples_csv,
)
from zkb_runner.recorder import RunRecorder, RunScope
from zkb_runner.stop_token import CancellationToken

__all__ = [
    "BenchmarkConfig",
    "BenchmarkRun",
    "BenchmarkRunner",
    "CancellationToken",
    "CircuitInfo",
    "HardwareReader",
    "HardwareReading",
    "HardwareSampler",
    "RecordedRun",
    "RunRecorder",
    "RunScope",
    "RunTimings",
    "Sample",
    "SamplerConfig",
    "SamplerFailure",
    "SamplerResult",
    "SamplerSession",
    "Workload",
    "create_reader",
    "load_samples_csv",
]
