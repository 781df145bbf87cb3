"""
Integration and windowed queries over irregular hardware sample series.

Timestamps are handled on an integer microsecond axis. Averages are derived
from a cumulative trapezoidal integral, so every window query after the
initial integration costs one scan to locate the window edges.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Sequence

import numpy as np

from zkb_common.errors import DegenerateWindowError
from zkb_runner.models.timings import Sample

# Returned by window_max when no sample falls in the window. It cannot be told
# apart from a genuine zero reading; use window_is_empty for that.
EMPTY_WINDOW = 0

_EPOCH_NAIVE = datetime(1970, 1, 1)
_EPOCH_AWARE = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def to_micros(moment: datetime) -> int:
    epoch = _EPOCH_NAIVE if moment.tzinfo is None else _EPOCH_AWARE
    return (moment - epoch) // _MICROSECOND


def as_micros(moments: Sequence[datetime]) -> np.ndarray:
    return np.fromiter((to_micros(m) for m in moments), dtype=np.int64, count=len(moments))


@dataclass(frozen=True)
class Integral:
    """Total trapezoidal integral and its per-sample running values."""

    total: float
    cumulative: np.ndarray

    @property
    def empty(self) -> bool:
        return self.cumulative.size == 0


def integrate(timestamps: Sequence[int] | np.ndarray, values: Sequence[float] | np.ndarray) -> Integral:
    """
    Integrate ``values`` over ``timestamps`` with the trapezoidal rule.

    ``cumulative[i]`` is the integral from the first sample up to sample ``i``
    (so ``cumulative[0] == 0``). Fewer than two samples is the "no data" case
    and yields a zero total with an empty cumulative array.
    """
    t = np.asarray(timestamps, dtype=np.int64)
    y = np.asarray(values, dtype=np.float64)
    if t.shape != y.shape:
        raise ValueError("timestamps and values must have the same length")
    if t.size < 2:
        return Integral(total=0.0, cumulative=np.empty(0, dtype=np.float64))

    areas = (y[1:] + y[:-1]) / 2.0 * np.diff(t).astype(np.float64)
    cumulative = np.concatenate(([0.0], np.cumsum(areas)))
    return Integral(total=float(cumulative[-1]), cumulative=cumulative)


def _window_mask(t: np.ndarray, lo: int, hi: int) -> np.ndarray:
    return (t > lo) & (t < hi)


def window_is_empty(timestamps: Sequence[int] | np.ndarray, lo: int, hi: int) -> bool:
    """True when no sample lies strictly between ``lo`` and ``hi``."""
    t = np.asarray(timestamps, dtype=np.int64)
    return not _window_mask(t, lo, hi).any()


def window_max(
    timestamps: Sequence[int] | np.ndarray,
    values: Sequence[float] | np.ndarray,
    lo: int,
    hi: int,
):
    """Peak of the samples strictly inside ``(lo, hi)``; EMPTY_WINDOW if none."""
    t = np.asarray(timestamps, dtype=np.int64)
    y = np.asarray(values)
    mask = _window_mask(t, lo, hi)
    if not mask.any():
        return EMPTY_WINDOW
    return y[mask].max().item()


def window_average(
    timestamps: Sequence[int] | np.ndarray,
    cumulative: np.ndarray,
    lo: int,
    hi: int,
) -> float:
    """
    Time-weighted average between the first sample after ``lo`` and the first
    sample at or after ``hi`` (the last sample when the series ends earlier).

    Raises:
        DegenerateWindowError: the window contains no sample after ``lo`` or
            spans zero time.
    """
    t = np.asarray(timestamps, dtype=np.int64)
    if cumulative.size != t.size:
        raise DegenerateWindowError(
            "Cumulative integral does not cover the sample series",
            context={"samples": int(t.size), "cumulative": int(cumulative.size)},
        )

    after_lo = np.flatnonzero(t > lo)
    if after_lo.size == 0:
        raise DegenerateWindowError(
            "No sample after window start",
            context={"lo": lo, "hi": hi, "samples": int(t.size)},
        )
    start_idx = int(after_lo[0])
    at_hi = np.flatnonzero(t >= hi)
    end_idx = int(at_hi[0]) if at_hi.size else int(t.size - 1)

    span = int(t[end_idx] - t[start_idx])
    if span <= 0:
        raise DegenerateWindowError(
            "Aggregation window spans zero time",
            context={"lo": lo, "hi": hi, "start_idx": start_idx, "end_idx": end_idx},
        )
    return float(cumulative[end_idx] - cumulative[start_idx]) / span


def slice_window(samples: Sequence[Sample], lo: datetime, hi: datetime) -> list[Sample]:
    """Samples taken strictly between ``lo`` and ``hi``."""
    return [sample for sample in samples if lo < sample.timestamp < hi]


@dataclass(frozen=True)
class WindowStats:
    sample_count: int
    utilization_avg: float
    utilization_peak: int
    memory_avg: float
    memory_peak: int
    power_avg: float
    power_peak: int

    def energy_millijoules(self, duration: timedelta) -> float:
        """Average power (mW) times the window duration (s)."""
        return self.power_avg * duration.total_seconds()


class TimeSeriesAggregator:
    """Integrates the three metric series of a sample list once and queries windows."""

    def __init__(self, samples: Sequence[Sample]):
        self.samples = list(samples)
        self.timestamps = as_micros([s.timestamp for s in self.samples])
        self.utilization = np.array([s.utilization_percent for s in self.samples], dtype=np.int64)
        self.memory = np.array([s.memory_used_bytes for s in self.samples], dtype=np.int64)
        self.power = np.array([s.power_milliwatts for s in self.samples], dtype=np.int64)
        self.integrals = {
            "utilization": integrate(self.timestamps, self.utilization),
            "memory": integrate(self.timestamps, self.memory),
            "power": integrate(self.timestamps, self.power),
        }

    def window_stats(self, lo: datetime, hi: datetime) -> WindowStats:
        lo_us, hi_us = to_micros(lo), to_micros(hi)

        def _avg(metric: str) -> float:
            return window_average(self.timestamps, self.integrals[metric].cumulative, lo_us, hi_us)

        return WindowStats(
            sample_count=int(_window_mask(self.timestamps, lo_us, hi_us).sum()),
            utilization_avg=_avg("utilization"),
            utilization_peak=window_max(self.timestamps, self.utilization, lo_us, hi_us),
            memory_avg=_avg("memory"),
            memory_peak=window_max(self.timestamps, self.memory, lo_us, hi_us),
            power_avg=_avg("power"),
            power_peak=window_max(self.timestamps, self.power, lo_us, hi_us),
        )
