"""
Report compilation for a finished benchmark.

The compiler merges caller-observed run boundaries with the phases recovered
from the prover log, derives per-run and summary durations, correlates runs
with the hardware samples when acceleration was enabled, and writes the
report files into a fresh ``benchmark-<n>`` directory.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from zkb_common.errors import DegenerateWindowError, ResultPersistenceError
from zkb_runner.models.config import BenchmarkConfig
from zkb_runner.models.timings import BenchmarkRun, RunTimings, Sample, SamplerFailure

from zkb_analytics.log_phases import (
    LogLayout,
    LogPhaseReconstructor,
    decode_log,
    detect_curve,
    get_layout,
)
from zkb_analytics.timeseries import TimeSeriesAggregator, WindowStats, slice_window

logger = logging.getLogger(__name__)

_MS = timedelta(milliseconds=1)
_US = timedelta(microseconds=1)
_MIB = 1024.0 * 1024.0

RESULTS_COLUMNS = [
    "Run number",
    "Witness generation",
    "Solution generation",
    "Proof generation",
    "Proof generation (full function)",
    "Proof verification",
    "Full run",
    "Valid proof",
]
SUMMARY_COLUMNS = [
    "Arithmitization",
    "Setup",
    "Avg witness generation",
    "Avg solution generation",
    "Avg proof generation",
    "Avg proof generation function",
    "Avg full run",
]
GPU_STATS_COLUMNS = [
    "Run number",
    "Run duration",
    "GPU util avg",
    "GPU util peak",
    "GPU mem avg",
    "GPU mem peak",
    "GPU power avg",
    "GPU power peak",
    "GPU energy",
]
GPU_SAMPLES_COLUMNS = ["t", "GPU util", "GPU mem", "GPU power"]
TIMESTAMPS_COLUMNS = [
    "Run number",
    "Witness gen start",
    "Witness gen end",
    "Solution gen start",
    "Solution gen end",
    "Proof gen start",
    "Proof gen end",
    "Proof gen func start",
    "Proof gen func end",
    "Proof ver start",
    "Proof ver end",
]


def _ms(delta: timedelta) -> int:
    return delta // _MS


def _relative_ms(moment: datetime, origin: datetime) -> str:
    return f"{((moment - origin) // _US) / 1000.0:.3f}"


def allocate_output_dir(root: Path) -> Path:
    """
    Create and return the first unused ``benchmark-<n>`` directory under root.

    Names are probed linearly from 0, so gaps left by deleted runs are reused.
    Two concurrent invocations may race for the same name.
    """
    try:
        root.mkdir(parents=True, exist_ok=True)
        index = 0
        while True:
            candidate = root / f"benchmark-{index}"
            if not candidate.exists():
                candidate.mkdir()
                return candidate
            index += 1
    except OSError as exc:
        raise ResultPersistenceError(
            "Cannot create benchmark output directory",
            context={"root": root},
            cause=exc,
        ) from exc


@dataclass
class ReportSet:
    """All report tables of one benchmark, built before anything touches disk."""

    parameters: Dict[str, Any]
    results: pd.DataFrame
    summary: pd.DataFrame
    timings: List[RunTimings]
    gpu_stats: Optional[pd.DataFrame] = None
    gpu_samples: Optional[pd.DataFrame] = None
    timestamps: Optional[pd.DataFrame] = None
    degraded_runs: List[int] = field(default_factory=list)

    def tables(self) -> Dict[str, pd.DataFrame]:
        tables = {
            "benchmark_results.csv": self.results,
            "benchmark_summary.csv": self.summary,
        }
        if self.gpu_stats is not None:
            tables["gpu_stats.csv"] = self.gpu_stats
        if self.gpu_samples is not None:
            tables["gpu_samples.csv"] = self.gpu_samples
        if self.timestamps is not None:
            tables["timestamps.csv"] = self.timestamps
        return tables


class ReportCompiler:
    """Build and persist the report set of a benchmark run."""

    def __init__(self, output_root: Path, layout: LogLayout | None = None):
        """
        Initialize the compiler.

        Args:
            output_root: Directory under which benchmark-<n> folders are created
            layout: Prover log index law used to locate phase durations
        """
        self.output_root = output_root
        self.reconstructor = LogPhaseReconstructor(layout)

    @classmethod
    def from_config(cls, config: BenchmarkConfig) -> "ReportCompiler":
        return cls(config.output_dir, get_layout(config.log_layout_version))

    def compile(self, run: BenchmarkRun) -> ReportSet:
        if not run.runs:
            raise ValueError("Cannot compile a report for a benchmark without runs")
        entries = decode_log(run.log_text)
        timings = self.reconstructor.reconstruct(
            entries, run.runs, run.circuit.acceleration
        )
        curve = run.circuit.curve or detect_curve(entries)

        arith_ms = _ms(run.arithmetization_end - run.arithmetization_start)
        setup_ms = _ms(run.setup_end - run.setup_start)
        parameters = {
            "Circuit": run.circuit.name,
            "Curve": curve,
            "Accelerator": run.circuit.accelerator_label,
            "Number of runs": run.run_count,
            "Number of constraints": run.circuit.nb_constraints,
            "Arithmatization duration": arith_ms,
            "Setup duration": setup_ms,
        }

        results, summary = self._duration_tables(timings, arith_ms, setup_ms)
        report = ReportSet(
            parameters=parameters,
            results=results,
            summary=summary,
            timings=timings,
        )

        if run.circuit.acceleration:
            if run.samples is None:
                logger.warning("Acceleration enabled but no hardware samples were recorded")
            else:
                self._add_hardware_tables(report, run.samples, run.sampler_failures)
        return report

    def _duration_tables(
        self, timings: List[RunTimings], arith_ms: int, setup_ms: int
    ) -> tuple[pd.DataFrame, pd.DataFrame]:
        rows = []
        sums = dict.fromkeys(
            ("witness", "solution", "proof", "prove_call", "full_run"), 0
        )
        for index, timing in enumerate(timings):
            witness = _ms(timing.witness_gen_end - timing.witness_gen_start)
            solution = _ms(timing.solution_gen_end - timing.solution_gen_start)
            proof = _ms(timing.proof_gen_end - timing.proof_gen_start)
            prove_call = _ms(timing.prove_call_end - timing.prove_call_start)
            verify = _ms(timing.verify_end - timing.verify_start)
            full_run = _ms(timing.verify_end - timing.witness_gen_start)
            sums["witness"] += witness
            sums["solution"] += solution
            sums["proof"] += proof
            sums["prove_call"] += prove_call
            sums["full_run"] += full_run
            rows.append(
                [
                    index,
                    witness,
                    solution,
                    proof,
                    prove_call,
                    verify,
                    full_run,
                    "true" if timing.valid else "false",
                ]
            )

        runs = len(timings)
        summary_row = [
            arith_ms,
            setup_ms,
            sums["witness"] // runs,
            sums["solution"] // runs,
            sums["proof"] // runs,
            sums["prove_call"] // runs,
            sums["full_run"] // runs,
        ]
        return (
            pd.DataFrame(rows, columns=RESULTS_COLUMNS),
            pd.DataFrame([summary_row], columns=SUMMARY_COLUMNS),
        )

    def _add_hardware_tables(
        self,
        report: ReportSet,
        samples: List[Sample],
        failures: List[SamplerFailure],
    ) -> None:
        timings = report.timings
        first_start = timings[0].witness_gen_start
        last_end = timings[-1].verify_end
        in_runs = slice_window(samples, first_start, last_end)
        aggregator = TimeSeriesAggregator(in_runs)

        stats_rows = []
        for index, timing in enumerate(timings):
            if any(timing.start <= f.timestamp <= timing.end for f in failures):
                logger.warning("Run %d overlaps failed hardware reads; statistics are degraded", index)
                report.degraded_runs.append(index)
            stats_rows.append(
                self._stats_row(aggregator, index, timing.start, timing.end)
            )
        stats_rows.append(self._stats_row(aggregator, "all", first_start, last_end))
        report.gpu_stats = pd.DataFrame(stats_rows, columns=GPU_STATS_COLUMNS)

        sample_rows = []
        if in_runs:
            origin = in_runs[0].timestamp
            for sample in in_runs:
                sample_rows.append(
                    [
                        _relative_ms(sample.timestamp, origin),
                        sample.utilization_percent,
                        f"{sample.memory_used_bytes / _MIB:.3f}",
                        sample.power_milliwatts,
                    ]
                )
        report.gpu_samples = pd.DataFrame(sample_rows, columns=GPU_SAMPLES_COLUMNS)

        timestamp_rows = []
        for index, timing in enumerate(timings):
            bounds = (
                timing.witness_gen_start,
                timing.witness_gen_end,
                timing.solution_gen_start,
                timing.solution_gen_end,
                timing.proof_gen_start,
                timing.proof_gen_end,
                timing.prove_call_start,
                timing.prove_call_end,
                timing.verify_start,
                timing.verify_end,
            )
            timestamp_rows.append(
                [index] + [_relative_ms(moment, first_start) for moment in bounds]
            )
        report.timestamps = pd.DataFrame(timestamp_rows, columns=TIMESTAMPS_COLUMNS)

    def _stats_row(
        self,
        aggregator: TimeSeriesAggregator,
        label: Any,
        lo: datetime,
        hi: datetime,
    ) -> list[Any]:
        duration = hi - lo
        try:
            stats: WindowStats = aggregator.window_stats(lo, hi)
        except DegenerateWindowError as exc:
            logger.warning("No usable hardware window for run %s: %s", label, exc)
            return [label, _ms(duration)] + [""] * 7
        return [
            label,
            _ms(duration),
            f"{stats.utilization_avg:.2f}",
            stats.utilization_peak,
            f"{stats.memory_avg / _MIB:.3f}",
            f"{stats.memory_peak / _MIB:.2f}",
            f"{stats.power_avg:.3f}",
            stats.power_peak,
            f"{stats.energy_millijoules(duration):.3f}",
        ]

    def write(self, report: ReportSet) -> Path:
        """Allocate the output directory and write every report file."""
        folder = allocate_output_dir(self.output_root)
        try:
            params_path = folder / "benchmark_parameters.json"
            params_path.write_text(json.dumps(report.parameters, indent=4))
            for filename, table in report.tables().items():
                table.to_csv(folder / filename, index=False)
        except OSError as exc:
            raise ResultPersistenceError(
                "Failed to write benchmark report",
                context={"folder": folder},
                cause=exc,
            ) from exc
        return folder

    def compile_and_write(self, run: BenchmarkRun) -> Path:
        report = self.compile(run)
        folder = self.write(report)
        logger.info("Benchmark results written in %s", folder)
        return folder
