"""Runner facade for zk-benchmark-lib components.

Re-exports the runner-facing types; analytics live in ``zkb_analytics``.
"""

from zkb_runner.models.config import BenchmarkConfig
from zkb_runner.recorder import RunRecorder
from zkb_runner.stop_token import CancellationToken

__all__ = ["BenchmarkConfig", "CancellationToken", "RunRecorder"]
