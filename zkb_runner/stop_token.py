"""Cancellation token shared between the workload thread and the sampler."""

from __future__ import annotations

import threading


class CancellationToken:
    """
    Single-use cooperative stop signal.

    The workload side calls `request_stop()` once; the sampler loop waits on
    `wait(timeout)` between ticks so a stop request is observed within one
    sampling period.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def request_stop(self) -> None:
        """Trip the token; later calls have no effect."""
        self._event.set()

    def should_stop(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to ``timeout`` seconds; True once stop was requested."""
        return self._event.wait(timeout)
