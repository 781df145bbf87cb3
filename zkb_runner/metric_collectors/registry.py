"""Factory for hardware readers selected by configuration."""

from __future__ import annotations

from typing import Callable, Dict

from zkb_common.errors import ConfigurationError
from zkb_runner.models.config import SamplerConfig

from ._base_collector import HardwareReader


def _nvml_factory(config: SamplerConfig) -> HardwareReader:
    from .nvml_collector import NvmlReader

    return NvmlReader(device_index=config.device_index)


def _psutil_factory(config: SamplerConfig) -> HardwareReader:
    from .psutil_collector import PsutilReader

    return PsutilReader()


READER_FACTORIES: Dict[str, Callable[[SamplerConfig], HardwareReader]] = {
    "nvml": _nvml_factory,
    "psutil": _psutil_factory,
}


def create_reader(config: SamplerConfig) -> HardwareReader:
    """Build the reader named by ``config.backend``."""
    factory = READER_FACTORIES.get(config.backend)
    if factory is None:
        raise ConfigurationError(
            f"Unknown sampler backend: {config.backend}",
            context={"available": sorted(READER_FACTORIES)},
        )
    return factory(config)
