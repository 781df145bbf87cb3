"""
Reconstruction of solution/proof generation phases from the prover log.

The prover only reports one combined call per run, but its structured log
carries the duration of the constraint-system solve and of the proof
computation. Which log line holds which duration depends on the acceleration
mode and on how many lines every earlier run emitted, which in turn depends
on whether its proof verified. That positional contract lives entirely in
`LogLayout` so a change in the prover's log format is a single new layout
version.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from zkb_common.errors import ConfigurationError, LogTruncatedError, OutputParseError
from zkb_runner.models.timings import RecordedRun, RunTimings

logger = logging.getLogger(__name__)


class LogEntry(BaseModel):
    """One line of the prover's newline-delimited JSON log."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    level: str = ""
    timestamp: str = Field(default="", alias="time")
    message: str = ""
    curve: str = ""
    constraint_count: int = Field(default=0, alias="nbConstraints")
    acceleration_mode: str = Field(default="", alias="acceleration")
    backend: str = ""
    duration_millis: Optional[float] = Field(default=None, alias="took")


def _reject_constant(token: str) -> float:
    raise ValueError(f"Non-standard JSON constant: {token}")


def decode_log(text: str) -> list[LogEntry]:
    """Decode log lines in order, stopping at the first malformed entry."""
    entries: list[LogEntry] = []
    for line_number, line in enumerate(text.splitlines()):
        if not line.strip():
            continue
        try:
            payload = json.loads(line, parse_constant=_reject_constant)
            entries.append(LogEntry.model_validate(payload))
        except (ValueError, ValidationError):
            logger.debug(
                "Stopped decoding prover log at line %d after %d entries",
                line_number,
                len(entries),
            )
            break
    return entries


def detect_curve(entries: Sequence[LogEntry]) -> str:
    """Return the first curve named in the log, or an empty string."""
    for entry in entries:
        if entry.curve:
            return entry.curve
    return ""


@dataclass(frozen=True)
class LogLayout:
    """Positional index law of phase durations inside the prover log."""

    version: int
    preamble_plain: int = 3
    preamble_accelerated: int = 4
    entries_valid_run: int = 3
    entries_invalid_run: int = 2

    def base(self, acceleration: bool) -> int:
        return self.preamble_accelerated if acceleration else self.preamble_plain

    def increment(self, valid: bool) -> int:
        return self.entries_valid_run if valid else self.entries_invalid_run

    def indices(
        self, validity: Sequence[bool], acceleration: bool
    ) -> list[tuple[int, int]]:
        """Return ``(solution_index, proof_index)`` for every run."""
        base = self.base(acceleration)
        offset = 0
        positions = []
        for valid in validity:
            positions.append((base - 1 + offset, base + offset))
            offset += self.increment(valid)
        return positions


LOG_LAYOUTS: dict[int, LogLayout] = {1: LogLayout(version=1)}


def get_layout(version: int) -> LogLayout:
    try:
        return LOG_LAYOUTS[version]
    except KeyError as exc:
        raise ConfigurationError(
            f"Unknown prover log layout version: {version}",
            context={"available": sorted(LOG_LAYOUTS)},
            cause=exc,
        ) from exc


@dataclass(frozen=True)
class PhaseDurations:
    solution_gen_ms: int
    proof_gen_ms: int


class LogPhaseReconstructor:
    """Infer solution and proof generation boundaries for every run."""

    def __init__(self, layout: LogLayout | None = None) -> None:
        self.layout = layout or LOG_LAYOUTS[1]

    def _duration_at(self, entries: Sequence[LogEntry], index: int, run: int) -> int:
        if index >= len(entries):
            raise LogTruncatedError(
                "Prover log truncated: missing phase duration entry",
                context={
                    "run": run,
                    "required_index": index,
                    "available_entries": len(entries),
                    "layout_version": self.layout.version,
                },
            )
        duration = entries[index].duration_millis
        if duration is None:
            raise OutputParseError(
                "Prover log entry carries no duration",
                context={"run": run, "index": index, "message": entries[index].message},
            )
        if not math.isfinite(duration) or duration < 0:
            raise OutputParseError(
                "Prover log entry carries an invalid duration",
                context={"run": run, "index": index, "duration": duration},
            )
        return int(duration)

    def durations(
        self,
        entries: Sequence[LogEntry],
        validity: Sequence[bool],
        acceleration: bool,
    ) -> list[PhaseDurations]:
        result = []
        for run, (solution_idx, proof_idx) in enumerate(
            self.layout.indices(validity, acceleration)
        ):
            result.append(
                PhaseDurations(
                    solution_gen_ms=self._duration_at(entries, solution_idx, run),
                    proof_gen_ms=self._duration_at(entries, proof_idx, run),
                )
            )
        return result

    def reconstruct(
        self,
        entries: Sequence[LogEntry],
        runs: Sequence[RecordedRun],
        acceleration: bool,
    ) -> list[RunTimings]:
        """Derive phase boundaries backwards from the end of each prove call."""
        phases = self.durations(entries, [run.valid for run in runs], acceleration)
        timings = []
        for index, (run, phase) in enumerate(zip(runs, phases)):
            proof_gen_start = run.prove_call_end - timedelta(milliseconds=phase.proof_gen_ms)
            solution_gen_start = proof_gen_start - timedelta(milliseconds=phase.solution_gen_ms)
            # Both derived phases happen inside the prove call.
            if solution_gen_start < run.prove_call_start:
                raise OutputParseError(
                    "Logged phase durations exceed the prove call",
                    context={
                        "run": index,
                        "solution_gen_ms": phase.solution_gen_ms,
                        "proof_gen_ms": phase.proof_gen_ms,
                        "prove_call_ms": (run.prove_call_end - run.prove_call_start)
                        // timedelta(milliseconds=1),
                        "layout_version": self.layout.version,
                    },
                )
            timings.append(
                RunTimings(
                    witness_gen_start=run.witness_gen_start,
                    witness_gen_end=run.witness_gen_end,
                    solution_gen_start=solution_gen_start,
                    solution_gen_end=proof_gen_start,
                    proof_gen_start=proof_gen_start,
                    proof_gen_end=run.prove_call_end,
                    prove_call_start=run.prove_call_start,
                    prove_call_end=run.prove_call_end,
                    verify_start=run.verify_start,
                    verify_end=run.verify_end,
                    valid=run.valid,
                )
            )
        return timings
