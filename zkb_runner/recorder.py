"""Accumulates caller-observed phase boundaries across benchmark runs."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from zkb_runner.models.timings import (
    BenchmarkRun,
    CircuitInfo,
    RecordedRun,
    SamplerResult,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class RunScope:
    """Collects the boundaries of a single run while it executes."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._bounds: dict[str, tuple[datetime, datetime]] = {}
        self.valid = False

    @contextmanager
    def _phase(self, name: str) -> Iterator[None]:
        start = self._clock()
        try:
            yield
        finally:
            self._bounds[name] = (start, self._clock())

    def witness(self):
        return self._phase("witness")

    def prove(self):
        return self._phase("prove")

    def verify(self):
        return self._phase("verify")

    def mark_valid(self, valid: bool) -> None:
        self.valid = valid

    def to_recorded(self) -> RecordedRun:
        missing = {"witness", "prove", "verify"} - set(self._bounds)
        if missing:
            raise ValueError(f"Run is missing phases: {sorted(missing)}")
        witness, prove, verify = (
            self._bounds["witness"],
            self._bounds["prove"],
            self._bounds["verify"],
        )
        return RecordedRun(
            witness_gen_start=witness[0],
            witness_gen_end=witness[1],
            prove_call_start=prove[0],
            prove_call_end=prove[1],
            verify_start=verify[0],
            verify_end=verify[1],
            valid=self.valid,
        )


class RunRecorder:
    """Record arithmetization, setup and per-run boundaries for one benchmark."""

    def __init__(self, clock: Clock = datetime.now) -> None:
        self._clock = clock
        self._arithmetization: Optional[tuple[datetime, datetime]] = None
        self._setup: Optional[tuple[datetime, datetime]] = None
        self._runs: list[RecordedRun] = []

    @property
    def runs(self) -> list[RecordedRun]:
        return list(self._runs)

    def record_arithmetization(self, start: datetime, end: datetime) -> None:
        if end < start:
            raise ValueError("Arithmetization ends before it starts")
        self._arithmetization = (start, end)

    def record_setup(self, start: datetime, end: datetime) -> None:
        if end < start:
            raise ValueError("Setup ends before it starts")
        self._setup = (start, end)

    @contextmanager
    def arithmetization(self) -> Iterator[None]:
        start = self._clock()
        yield
        self.record_arithmetization(start, self._clock())

    @contextmanager
    def setup(self) -> Iterator[None]:
        start = self._clock()
        yield
        self.record_setup(start, self._clock())

    def record_run(
        self,
        *,
        witness_gen_start: datetime,
        witness_gen_end: datetime,
        prove_call_start: datetime,
        prove_call_end: datetime,
        verify_start: datetime,
        verify_end: datetime,
        valid: bool,
    ) -> RecordedRun:
        run = RecordedRun(
            witness_gen_start=witness_gen_start,
            witness_gen_end=witness_gen_end,
            prove_call_start=prove_call_start,
            prove_call_end=prove_call_end,
            verify_start=verify_start,
            verify_end=verify_end,
            valid=valid,
        )
        self._runs.append(run)
        return run

    @contextmanager
    def run(self) -> Iterator[RunScope]:
        """Yield a scope whose phases are committed as one run on exit."""
        scope = RunScope(self._clock)
        yield scope
        recorded = scope.to_recorded()
        self._runs.append(recorded)
        logger.debug(
            "Recorded run %d (valid=%s)", len(self._runs) - 1, recorded.valid
        )

    def build(
        self,
        circuit: CircuitInfo,
        log_text: str = "",
        sampler_result: Optional[SamplerResult] = None,
    ) -> BenchmarkRun:
        if self._arithmetization is None or self._setup is None:
            raise ValueError("Arithmetization and setup must be recorded before building")
        if not self._runs:
            raise ValueError("At least one run must be recorded")
        return BenchmarkRun(
            circuit=circuit,
            arithmetization_start=self._arithmetization[0],
            arithmetization_end=self._arithmetization[1],
            setup_start=self._setup[0],
            setup_end=self._setup[1],
            runs=list(self._runs),
            log_text=log_text,
            samples=list(sampler_result.samples) if sampler_result else None,
            sampler_failures=list(sampler_result.failures) if sampler_result else [],
        )
