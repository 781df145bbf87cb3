"""Benchmark execution engine."""

from zkb_runner.engine.runner import BenchmarkRunner, Workload

__all__ = ["BenchmarkRunner", "Workload"]
