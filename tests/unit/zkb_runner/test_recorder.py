"""Tests for RunRecorder bookkeeping."""

from datetime import timedelta

import pytest

from zkb_runner.models.timings import BenchmarkRun, CircuitInfo, Sample, SamplerResult
from zkb_runner.recorder import RunRecorder

pytestmark = pytest.mark.unit_runner

CIRCUIT = CircuitInfo(name="cubic", curve="bn254", nb_constraints=3, acceleration=False)


class TickClock:
    """Deterministic clock advancing one millisecond per call."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        current = self.now
        self.now += timedelta(milliseconds=1)
        return current


def test_context_managers_record_ordered_boundaries(t0):
    recorder = RunRecorder(clock=TickClock(t0))
    with recorder.arithmetization():
        pass
    with recorder.setup():
        pass
    with recorder.run() as scope:
        with scope.witness():
            pass
        with scope.prove():
            pass
        with scope.verify():
            pass
        scope.mark_valid(True)

    benchmark = recorder.build(CIRCUIT, log_text="{}")
    (run,) = benchmark.runs
    assert benchmark.arithmetization_end - benchmark.arithmetization_start == timedelta(milliseconds=1)
    assert run.witness_gen_start == t0 + timedelta(milliseconds=4)
    assert run.verify_end == t0 + timedelta(milliseconds=9)
    assert run.valid is True
    assert benchmark.run_count == 1
    assert benchmark.samples is None


def test_run_scope_requires_every_phase(t0):
    recorder = RunRecorder(clock=TickClock(t0))
    with pytest.raises(ValueError):
        with recorder.run() as scope:
            with scope.witness():
                pass
    assert recorder.runs == []


def test_record_run_rejects_out_of_order_boundaries(t0):
    recorder = RunRecorder()
    with pytest.raises(ValueError):
        recorder.record_run(
            witness_gen_start=t0,
            witness_gen_end=t0 + timedelta(milliseconds=5),
            prove_call_start=t0 + timedelta(milliseconds=4),
            prove_call_end=t0 + timedelta(milliseconds=10),
            verify_start=t0 + timedelta(milliseconds=11),
            verify_end=t0 + timedelta(milliseconds=12),
            valid=True,
        )


def test_build_requires_setup_and_runs(t0):
    recorder = RunRecorder()
    with pytest.raises(ValueError):
        recorder.build(CIRCUIT)
    recorder.record_arithmetization(t0, t0)
    recorder.record_setup(t0, t0)
    with pytest.raises(ValueError):
        recorder.build(CIRCUIT)


def test_build_attaches_sampler_result_and_round_trips(t0, make_run):
    recorder = RunRecorder()
    recorder.record_arithmetization(t0 - timedelta(seconds=2), t0 - timedelta(seconds=1))
    recorder.record_setup(t0 - timedelta(seconds=1), t0)
    run = make_run(t0)
    recorder.record_run(**run.__dict__)
    samples = [Sample(t0 + timedelta(milliseconds=2), 10, 2048, 700)]

    benchmark = recorder.build(CIRCUIT, log_text="log", sampler_result=SamplerResult(samples=samples))
    restored = BenchmarkRun.from_dict(benchmark.to_dict())

    assert restored.runs == benchmark.runs
    assert restored.samples == samples
    assert restored.circuit == CIRCUIT
    assert restored.log_text == "log"
