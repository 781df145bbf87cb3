"""
NVML reader for accelerator telemetry.

This module reads utilization, memory and power of a single GPU through the
pynvml bindings. pynvml is imported lazily so hosts without NVIDIA drivers can
still import the package.
"""

from __future__ import annotations

import importlib.util
import logging
from typing import Any

from zkb_common.errors import MetricCollectionError
from zkb_runner.models.timings import HardwareReading

from ._base_collector import HardwareReader


logger = logging.getLogger(__name__)


class NvmlReader(HardwareReader):
    """Hardware reader backed by NVML."""

    name = "nvml"

    def __init__(self, device_index: int = 0):
        """
        Initialize the NVML reader.

        Args:
            device_index: Index of the GPU as enumerated by NVML
        """
        self.device_index = device_index
        self._nvml: Any = None
        self._handle: Any = None

    def _validate_environment(self) -> bool:
        return importlib.util.find_spec("pynvml") is not None

    def open(self) -> None:
        super().open()
        import pynvml

        try:
            pynvml.nvmlInit()
            self._handle = pynvml.nvmlDeviceGetHandleByIndex(self.device_index)
        except pynvml.NVMLError as exc:
            raise MetricCollectionError(
                "Unable to open NVML device",
                context={"reader": self.name, "device_index": self.device_index},
                cause=exc,
            ) from exc
        self._nvml = pynvml
        logger.info("Opened NVML device %d", self.device_index)

    def close(self) -> None:
        if self._nvml is None:
            return
        try:
            self._nvml.nvmlShutdown()
        finally:
            self._nvml = None
            self._handle = None

    def read(self) -> HardwareReading:
        if self._nvml is None or self._handle is None:
            raise MetricCollectionError(
                "NVML reader used before open()",
                context={"reader": self.name},
            )
        utilization = self._nvml.nvmlDeviceGetUtilizationRates(self._handle)
        memory = self._nvml.nvmlDeviceGetMemoryInfo(self._handle)
        power = self._nvml.nvmlDeviceGetPowerUsage(self._handle)
        return HardwareReading(
            utilization_percent=int(utilization.gpu),
            memory_used_bytes=int(memory.used),
            power_milliwatts=int(power),
        )
