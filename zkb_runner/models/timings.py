"""Timing and telemetry records produced while a benchmark executes."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from zkb_common.errors import MetricCollectionError


@dataclass(frozen=True)
class HardwareReading:
    """One raw reading from a hardware reader, before it is timestamped."""

    utilization_percent: int
    memory_used_bytes: int
    power_milliwatts: int


@dataclass(frozen=True)
class Sample:
    """A timestamped hardware-utilization reading."""

    timestamp: datetime
    utilization_percent: int
    memory_used_bytes: int
    power_milliwatts: int

    @classmethod
    def from_reading(cls, timestamp: datetime, reading: HardwareReading) -> "Sample":
        return cls(
            timestamp=timestamp,
            utilization_percent=reading.utilization_percent,
            memory_used_bytes=reading.memory_used_bytes,
            power_milliwatts=reading.power_milliwatts,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Sample":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            utilization_percent=int(data["utilization_percent"]),
            memory_used_bytes=int(data["memory_used_bytes"]),
            power_milliwatts=int(data["power_milliwatts"]),
        )


@dataclass(frozen=True)
class SamplerFailure:
    """A hardware read that failed at ``timestamp``."""

    timestamp: datetime
    error: MetricCollectionError


@dataclass(frozen=True)
class SamplerResult:
    """Everything a sampler hands off when it is stopped."""

    samples: list[Sample] = field(default_factory=list)
    failures: list[SamplerFailure] = field(default_factory=list)


@dataclass(frozen=True)
class RecordedRun:
    """Caller-observed boundaries of one witness/prove/verify cycle."""

    witness_gen_start: datetime
    witness_gen_end: datetime
    prove_call_start: datetime
    prove_call_end: datetime
    verify_start: datetime
    verify_end: datetime
    valid: bool

    def __post_init__(self) -> None:
        ordered = (
            self.witness_gen_start,
            self.witness_gen_end,
            self.prove_call_start,
            self.prove_call_end,
            self.verify_start,
            self.verify_end,
        )
        if any(later < earlier for earlier, later in zip(ordered, ordered[1:])):
            raise ValueError("Run boundaries must be recorded in chronological order")

    def to_dict(self) -> dict[str, Any]:
        return {
            key: value.isoformat() if isinstance(value, datetime) else value
            for key, value in asdict(self).items()
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecordedRun":
        return cls(
            witness_gen_start=datetime.fromisoformat(data["witness_gen_start"]),
            witness_gen_end=datetime.fromisoformat(data["witness_gen_end"]),
            prove_call_start=datetime.fromisoformat(data["prove_call_start"]),
            prove_call_end=datetime.fromisoformat(data["prove_call_end"]),
            verify_start=datetime.fromisoformat(data["verify_start"]),
            verify_end=datetime.fromisoformat(data["verify_end"]),
            valid=bool(data["valid"]),
        )


@dataclass(frozen=True)
class RunTimings:
    """Complete phase boundaries for one run, including log-derived phases."""

    witness_gen_start: datetime
    witness_gen_end: datetime
    solution_gen_start: datetime
    solution_gen_end: datetime
    proof_gen_start: datetime
    proof_gen_end: datetime
    prove_call_start: datetime
    prove_call_end: datetime
    verify_start: datetime
    verify_end: datetime
    valid: bool

    @property
    def start(self) -> datetime:
        return self.witness_gen_start

    @property
    def end(self) -> datetime:
        return self.verify_end


@dataclass(frozen=True)
class CircuitInfo:
    name: str
    curve: str
    nb_constraints: int
    acceleration: bool

    @property
    def accelerator_label(self) -> str:
        return "GPU" if self.acceleration else "CPU"


@dataclass(frozen=True)
class BenchmarkRun:
    """Aggregate root handed to the report compiler once execution ends."""

    circuit: CircuitInfo
    arithmetization_start: datetime
    arithmetization_end: datetime
    setup_start: datetime
    setup_end: datetime
    runs: list[RecordedRun]
    log_text: str = ""
    samples: list[Sample] | None = None
    sampler_failures: list[SamplerFailure] = field(default_factory=list)

    @property
    def run_count(self) -> int:
        return len(self.runs)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the run so it can be compiled offline later."""
        return {
            "circuit": asdict(self.circuit),
            "arithmetization_start": self.arithmetization_start.isoformat(),
            "arithmetization_end": self.arithmetization_end.isoformat(),
            "setup_start": self.setup_start.isoformat(),
            "setup_end": self.setup_end.isoformat(),
            "runs": [run.to_dict() for run in self.runs],
            "log_text": self.log_text,
            "samples": (
                [sample.to_dict() for sample in self.samples]
                if self.samples is not None
                else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BenchmarkRun":
        raw_samples = data.get("samples")
        return cls(
            circuit=CircuitInfo(**data["circuit"]),
            arithmetization_start=datetime.fromisoformat(data["arithmetization_start"]),
            arithmetization_end=datetime.fromisoformat(data["arithmetization_end"]),
            setup_start=datetime.fromisoformat(data["setup_start"]),
            setup_end=datetime.fromisoformat(data["setup_end"]),
            runs=[RecordedRun.from_dict(run) for run in data.get("runs", [])],
            log_text=data.get("log_text", ""),
            samples=(
                [Sample.from_dict(item) for item in raw_samples]
                if raw_samples is not None
                else None
            ),
        )


def load_samples_csv(path: Path) -> list[Sample]:
    """Load a sample series written as CSV with one column per Sample field."""
    df = pd.read_csv(path)
    df["timestamp"] = pd.to_datetime(df["timestamp"], format="ISO8601")
    df = df.sort_values("timestamp")
    return [
        Sample(
            timestamp=row.timestamp.to_pydatetime(),
            utilization_percent=int(row.utilization_percent),
            memory_used_bytes=int(row.memory_used_bytes),
            power_milliwatts=int(row.power_milliwatts),
        )
        for row in df.itertuples(index=False)
    ]
