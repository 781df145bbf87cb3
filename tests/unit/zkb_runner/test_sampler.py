"""Tests for HardwareSampler lifecycle, handoff and error handling."""

import threading
import time

import pytest

from zkb_common.errors import MetricCollectionError
from zkb_runner.api import CancellationToken, HardwareReader, HardwareReading, HardwareSampler

pytestmark = pytest.mark.unit_runner


class DummyReader(HardwareReader):
    name = "dummy"

    def __init__(self, fail_env: bool = False, fail_every: int = 0):
        self.fail_env = fail_env
        self.fail_every = fail_every
        self.calls = 0
        self.lock = threading.Lock()

    def read(self) -> HardwareReading:
        with self.lock:
            self.calls += 1
            calls = self.calls
        if self.fail_every and calls % self.fail_every == 0:
            raise RuntimeError("boom")
        return HardwareReading(utilization_percent=calls, memory_used_bytes=1024, power_milliwatts=5000)

    def _validate_environment(self) -> bool:
        return not self.fail_env


def test_open_raises_when_env_invalid():
    with pytest.raises(MetricCollectionError):
        DummyReader(fail_env=True).open()


def test_period_must_be_positive():
    with pytest.raises(ValueError):
        HardwareSampler(DummyReader(), 0)


def test_stop_hands_off_ordered_samples():
    reader = DummyReader()
    session = HardwareSampler(reader, 0.005).start()
    time.sleep(0.05)
    result = session.stop()

    assert result.samples, "Sampler should have collected at least one sample"
    timestamps = [s.timestamp for s in result.samples]
    assert all(a < b for a, b in zip(timestamps, timestamps[1:]))
    assert [s.utilization_percent for s in result.samples] == sorted(
        s.utilization_percent for s in result.samples
    )
    assert not session.running


def test_no_polling_after_stop():
    reader = DummyReader()
    session = HardwareSampler(reader, 0.005).start()
    time.sleep(0.02)
    session.stop()
    calls = reader.calls
    time.sleep(0.03)
    assert reader.calls == calls


def test_results_are_delivered_once():
    session = HardwareSampler(DummyReader(), 0.005).start()
    session.stop()
    with pytest.raises(MetricCollectionError):
        session.stop()


def test_cancellation_latency_is_bounded_by_period():
    session = HardwareSampler(DummyReader(), 0.2).start()
    time.sleep(0.01)
    started = time.monotonic()
    session.stop()
    assert time.monotonic() - started < 0.2 + 0.1


def test_read_failures_are_recorded_and_polling_continues():
    reader = DummyReader(fail_every=2)
    session = HardwareSampler(reader, 0.002).start()
    time.sleep(0.05)
    result = session.stop()

    assert result.failures
    assert result.samples
    assert all(isinstance(f.error, MetricCollectionError) for f in result.failures)
    assert isinstance(result.failures[0].error.__cause__, RuntimeError)


def test_external_token_stops_the_loop():
    token = CancellationToken()
    session = HardwareSampler(DummyReader(), 0.005).start(token)
    token.request_stop()
    result = session.stop()
    assert token.should_stop()
    assert isinstance(result.samples, list)


def test_context_manager_stops_session():
    sampler = HardwareSampler(DummyReader(), 0.005)
    with sampler.start() as session:
        time.sleep(0.01)
    assert not session.running
