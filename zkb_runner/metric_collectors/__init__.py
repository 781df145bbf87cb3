"""
Hardware telemetry readers and the background sampler.

Readers are exposed lazily to avoid importing optional dependencies at
module import time.
"""

from __future__ import annotations

import importlib
from typing import Any, Dict

from ._base_collector import HardwareReader, HardwareSampler, SamplerSession
from .registry import create_reader

__all__ = [
    "HardwareReader",
    "HardwareSampler",
    "SamplerSession",
    "create_reader",
    "NvmlReader",
    "PsutilReader",
]

_LAZY_MODULES: Dict[str, str] = {
    "NvmlReader": "nvml_collector",
    "PsutilReader": "psutil_collector",
}


def __getattr__(name: str) -> Any:
    if name in _LAZY_MODULES:
        module = importlib.import_module(f"{__name__}.{_LAZY_MODULES[name]}")
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
