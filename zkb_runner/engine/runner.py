"""
Sequential execution of a proving benchmark.

Arithmetization, setup and the N witness/prove/verify runs execute on the
calling thread. With acceleration enabled a `HardwareSampler` polls the device
from a background thread for the whole duration and is joined before the
recorded run is returned.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, TypeVar

from zkb_common.errors import WorkloadError
from zkb_runner.metric_collectors import HardwareReader, HardwareSampler, create_reader
from zkb_runner.models.config import BenchmarkConfig
from zkb_runner.models.timings import BenchmarkRun, CircuitInfo, SamplerResult
from zkb_runner.recorder import RunRecorder

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Workload(Protocol):
    """The proving system under test, seen as a black box."""

    def compile(self) -> Any: ...

    def constraint_count(self, compiled: Any) -> int: ...

    def setup(self, compiled: Any) -> None:
        """Generate proving and verifying keys, kept by the workload."""
        ...

    def witness(self, index: int) -> Any: ...

    def prove(self, index: int, witness: Any) -> Any: ...

    def verify(self, index: int, proof: Any) -> bool: ...

    def log_output(self) -> str:
        """Newline-delimited JSON log the prover emitted so far."""
        ...


class BenchmarkRunner:
    """Drive a workload through a full benchmark and record its timings."""

    def __init__(
        self,
        config: BenchmarkConfig,
        workload: Workload,
        reader: Optional[HardwareReader] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.workload = workload
        self._reader = reader
        self._clock = clock

    def _guard(self, stage: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return func(*args)
        except Exception as exc:
            raise WorkloadError(
                f"Workload failed during {stage}",
                context={"stage": stage, "circuit": self.config.circuit},
                cause=exc,
            ) from exc

    def _execute(self, recorder: RunRecorder) -> int:
        with recorder.arithmetization():
            compiled = self._guard("arithmetization", self.workload.compile)
        nb_constraints = self.config.nb_constraints or self._guard(
            "arithmetization", self.workload.constraint_count, compiled
        )

        logger.info("Running setup...")
        with recorder.setup():
            self._guard("setup", self.workload.setup, compiled)

        total = self.config.num_runs
        for index in range(total):
            logger.info("Benchmark run %d/%d", index + 1, total)
            with recorder.run() as scope:
                with scope.witness():
                    witness = self._guard("witness generation", self.workload.witness, index)
                proof = None
                with scope.prove():
                    try:
                        proof = self.workload.prove(index, witness)
                    except Exception as exc:
                        logger.error("Proof generation failed for run %d: %s", index, exc)
                valid = False
                with scope.verify():
                    if proof is not None:
                        try:
                            valid = bool(self.workload.verify(index, proof))
                        except Exception as exc:
                            logger.warning("Proof %d is invalid: %s", index, exc)
                scope.mark_valid(valid)
            if valid:
                logger.info("Proof %d is valid", index)
        return nb_constraints

    def run(self) -> BenchmarkRun:
        """Execute the benchmark and return everything the reports need."""
        recorder = RunRecorder(clock=self._clock)
        sampler_result: Optional[SamplerResult] = None

        if not self.config.acceleration:
            nb_constraints = self._execute(recorder)
        else:
            reader = self._reader or create_reader(self.config.sampler)
            with reader:
                sampler = HardwareSampler(reader, self.config.sampler.period_seconds)
                session = sampler.start()
                try:
                    nb_constraints = self._execute(recorder)
                except BaseException:
                    try:
                        session.stop()
                    except Exception as exc:
                        logger.error("Sampler failed while the workload was failing: %s", exc)
                    raise
                sampler_result = session.stop()

        circuit = CircuitInfo(
            name=self.config.circuit,
            curve=self.config.curve,
            nb_constraints=nb_constraints,
            acceleration=self.config.acceleration,
        )
        return recorder.build(
            circuit,
            log_text=self.workload.log_output(),
            sampler_result=sampler_result,
        )

    def run_and_report(self) -> Path:
        """Run the benchmark and write its report set."""
        from zkb_analytics.report import ReportCompiler

        benchmark = self.run()
        return ReportCompiler.from_config(self.config).compile_and_write(benchmark)
