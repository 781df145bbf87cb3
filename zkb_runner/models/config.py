"""Benchmark configuration (canonical runner/analytics definition)."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field, ValidationError, model_validator

from zkb_common.config.env import parse_float_env
from zkb_common.errors import ConfigurationError

DEFAULT_SAMPLING_PERIOD_MS = 2.0


class SamplerConfig(BaseModel):
    """Configuration for the background hardware sampler."""

    backend: Literal["nvml", "psutil"] = Field(default="nvml", description="Hardware reader used by the sampler")
    device_index: int = Field(default=0, ge=0, description="Index of the accelerator to sample")
    period_ms: float = Field(default=DEFAULT_SAMPLING_PERIOD_MS, gt=0, description="Sampling period in milliseconds")

    @property
    def period_seconds(self) -> float:
        return self.period_ms / 1000.0


class BenchmarkConfig(BaseModel):
    """Main configuration for a proving benchmark."""

    circuit: str = Field(default="sha256", description="Name of the benchmarked circuit")
    curve: str = Field(default="", description="Curve name; detected from the prover log when empty")
    acceleration: bool = Field(default=False, description="Offload proving to the accelerator and sample it")
    num_runs: int = Field(default=10, gt=0, description="Number of witness/prove/verify runs")
    nb_constraints: int = Field(default=0, ge=0, description="Number of constraints of the compiled circuit")

    output_dir: Path = Field(default=Path("./output"), description="Root directory holding benchmark-<n> folders")
    log_layout_version: int = Field(default=1, ge=1, description="Version of the prover log index law")

    sampler: SamplerConfig = Field(default_factory=SamplerConfig, description="Hardware sampler settings")

    @model_validator(mode="after")
    def _validate_circuit_not_empty(self) -> "BenchmarkConfig":
        if not self.circuit or not self.circuit.strip():
            raise ValueError("BenchmarkConfig: 'circuit' must be non-empty")
        return self

    def with_env_overrides(self) -> "BenchmarkConfig":
        """Return a copy with ``ZKB_OUTPUT_DIR``/``ZKB_SAMPLING_PERIOD_MS`` applied."""
        updates: Dict[str, Any] = {}
        env_output = os.environ.get("ZKB_OUTPUT_DIR")
        if env_output:
            updates["output_dir"] = Path(env_output)
        env_period = parse_float_env(os.environ.get("ZKB_SAMPLING_PERIOD_MS"))
        if env_period is not None and env_period > 0:
            updates["sampler"] = self.sampler.model_copy(update={"period_ms": env_period})
        return self.model_copy(update=updates) if updates else self

    @classmethod
    def from_json(cls, json_str: str) -> "BenchmarkConfig":
        try:
            return cls.model_validate_json(json_str)
        except ValidationError as exc:
            raise ConfigurationError("Invalid benchmark configuration", cause=exc) from exc

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BenchmarkConfig":
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError("Invalid benchmark configuration", cause=exc) from exc

    def save(self, filepath: Path) -> None:
        filepath.write_text(self.model_dump_json(indent=2))

    @classmethod
    def load(cls, filepath: Path) -> "BenchmarkConfig":
        try:
            text = filepath.read_text()
        except OSError as exc:
            raise ConfigurationError(
                "Cannot read benchmark configuration",
                context={"path": filepath},
                cause=exc,
            ) from exc
        return cls.from_json(text)
