"""
Background hardware sampler and the reader interface it polls.

The sampler runs in its own thread alongside the workload. The two sides
share nothing but a `CancellationToken` and a one-shot `Future`: the workload
trips the token, the loop finishes its current tick and hands the complete
sample list over through the future.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future
from datetime import datetime
from typing import Optional

from zkb_common.errors import MetricCollectionError
from zkb_runner.models.timings import (
    HardwareReading,
    Sample,
    SamplerFailure,
    SamplerResult,
)
from zkb_runner.stop_token import CancellationToken


logger = logging.getLogger(__name__)


class HardwareReader(ABC):
    """Abstract base class for hardware telemetry readers."""

    name: str = "reader"

    @abstractmethod
    def read(self) -> HardwareReading:
        """
        Take a single reading from the device.

        Returns:
            Utilization, used memory and power draw at this instant
        """

    @abstractmethod
    def _validate_environment(self) -> bool:
        """
        Validate that the reader can run in the current environment.

        Returns:
            True if the environment is valid, False otherwise
        """

    def open(self) -> None:
        """Acquire the device handle. Readers without one do nothing."""
        if not self._validate_environment():
            raise MetricCollectionError(
                f"{self.name} reader cannot run in this environment",
                context={"reader": self.name},
            )

    def close(self) -> None:
        """Release the device handle."""

    def __enter__(self) -> "HardwareReader":
        self.open()
        return self

    def __exit__(self, *_args) -> None:
        self.close()


class SamplerSession:
    """Handle on a running sampler; `stop()` is the single rendezvous."""

    def __init__(
        self,
        token: CancellationToken,
        future: "Future[SamplerResult]",
        thread: threading.Thread,
        name: str,
    ) -> None:
        self._token = token
        self._future = future
        self._thread = thread
        self._name = name
        self._collected = False

    @property
    def running(self) -> bool:
        return not self._future.done()

    def stop(self) -> SamplerResult:
        """Cancel polling and block until the sample list is handed off."""
        if self._collected:
            raise MetricCollectionError(
                "Sampler results were already collected",
                context={"sampler": self._name},
            )
        self._collected = True
        self._token.request_stop()
        result = self._future.result()
        self._thread.join()
        logger.info(
            "%s sampler stopped with %d samples (%d failed reads)",
            self._name,
            len(result.samples),
            len(result.failures),
        )
        return result

    def __enter__(self) -> "SamplerSession":
        return self

    def __exit__(self, *_args) -> None:
        if not self._collected:
            self.stop()


class HardwareSampler:
    """Periodic background collector of hardware samples."""

    def __init__(self, reader: HardwareReader, period_seconds: float):
        """
        Initialize the sampler.

        Args:
            reader: Device reader polled on every tick
            period_seconds: Sampling period in seconds
        """
        if period_seconds <= 0:
            raise ValueError("period_seconds must be positive")
        self.reader = reader
        self.period_seconds = period_seconds

    def start(self, token: Optional[CancellationToken] = None) -> SamplerSession:
        """Launch the polling loop in a background thread."""
        token = token or CancellationToken()
        future: "Future[SamplerResult]" = Future()
        future.set_running_or_notify_cancel()
        thread = threading.Thread(
            target=self._collection_loop,
            args=(token, future),
            name=f"{self.reader.name}-sampler",
            daemon=True,
        )
        thread.start()
        logger.info(
            "%s sampler started (period %.3f ms)",
            self.reader.name,
            self.period_seconds * 1000.0,
        )
        return SamplerSession(token, future, thread, self.reader.name)

    def _collection_loop(
        self, token: CancellationToken, future: "Future[SamplerResult]"
    ) -> None:
        """Poll until cancelled, then deliver the samples exactly once."""
        samples: list[Sample] = []
        failures: list[SamplerFailure] = []
        try:
            while not token.should_stop():
                tick = time.monotonic()
                collected_at = datetime.now()
                try:
                    reading = self.reader.read()
                except Exception as e:
                    error = MetricCollectionError(
                        f"{self.reader.name} reader failed to read the device",
                        context={"reader": self.reader.name},
                        cause=e,
                    )
                    failures.append(SamplerFailure(collected_at, error))
                    logger.error("Error in %s reader: %s", self.reader.name, e)
                else:
                    if samples and collected_at <= samples[-1].timestamp:
                        logger.debug("Dropping sample with non-increasing timestamp")
                    else:
                        samples.append(Sample.from_reading(collected_at, reading))

                elapsed = time.monotonic() - tick
                if token.wait(max(0.0, self.period_seconds - elapsed)):
                    break
        except BaseException as exc:
            future.set_exception(exc)
            return
        future.set_result(SamplerResult(samples=samples, failures=failures))
