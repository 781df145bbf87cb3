"""
PSUtil reader for host-level telemetry.

Used when no accelerator is sampled: utilization is the system-wide CPU
percentage and memory the used virtual memory. psutil exposes no power
counter, so power is always reported as 0.
"""

from __future__ import annotations

import psutil

from zkb_runner.models.timings import HardwareReading

from ._base_collector import HardwareReader


class PsutilReader(HardwareReader):
    """Hardware reader using psutil."""

    name = "psutil"

    def open(self) -> None:
        super().open()
        # Prime the counter; the first non-blocking call always returns 0.0.
        psutil.cpu_percent(interval=None)

    def read(self) -> HardwareReading:
        return HardwareReading(
            utilization_percent=int(round(psutil.cpu_percent(interval=None))),
            memory_used_bytes=int(psutil.virtual_memory().used),
            power_milliwatts=0,
        )

    def _validate_environment(self) -> bool:
        return True
