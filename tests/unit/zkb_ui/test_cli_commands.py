"""CLI tests for report compilation and reader probing."""

import csv
import json
from datetime import timedelta

import pytest
from typer.testing import CliRunner

from zkb_runner.models.timings import BenchmarkRun, CircuitInfo, HardwareReading
from zkb_ui import cli

pytestmark = pytest.mark.unit_ui

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda **_kwargs: None)


@pytest.fixture
def recorded_benchmark(tmp_path, t0, make_run, prover_log):
    runs = [make_run(t0), make_run(t0 + timedelta(seconds=1), valid=False)]
    benchmark = BenchmarkRun(
        circuit=CircuitInfo(name="cubic", curve="", nb_constraints=3, acceleration=False),
        arithmetization_start=t0 - timedelta(seconds=2),
        arithmetization_end=t0 - timedelta(seconds=1),
        setup_start=t0 - timedelta(seconds=1),
        setup_end=t0,
        runs=runs,
        log_text=prover_log([True, False], False, [(30, 60), (25, 70)]),
    )
    path = tmp_path / "run.json"
    path.write_text(json.dumps(benchmark.to_dict()))
    return path


def test_compile_writes_report_folder(tmp_path, recorded_benchmark):
    output = tmp_path / "reports"
    result = runner.invoke(cli.app, ["compile", "-t", str(recorded_benchmark), "-o", str(output)])

    assert result.exit_code == 0, result.output
    folder = output / "benchmark-0"
    assert "Benchmark results written in" in result.output
    params = json.loads((folder / "benchmark_parameters.json").read_text())
    assert params["Curve"] == "bn254"
    assert params["Arithmatization duration"] == 1000


def test_compile_uses_replacement_log(tmp_path, recorded_benchmark, prover_log):
    log = tmp_path / "prover.log"
    log.write_text(prover_log([True, False], False, [(40, 50), (20, 80)], curve="bls12_377"))
    output = tmp_path / "reports"
    result = runner.invoke(
        cli.app, ["compile", "-t", str(recorded_benchmark), "-l", str(log), "-o", str(output)]
    )

    assert result.exit_code == 0, result.output
    with open(output / "benchmark-0" / "benchmark_results.csv", newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[1][2:4] == ["40", "50"]


def test_compile_truncated_log_fails(tmp_path, recorded_benchmark, prover_log):
    log = tmp_path / "prover.log"
    log.write_text(prover_log([True], False, [(40, 50)]))
    output = tmp_path / "reports"
    result = runner.invoke(
        cli.app, ["compile", "-t", str(recorded_benchmark), "-l", str(log), "-o", str(output)]
    )

    assert result.exit_code == 1
    assert "LogTruncatedError" in result.output
    assert not (output / "benchmark-0").exists()


def test_compile_rejects_malformed_run_file(tmp_path):
    bad = tmp_path / "run.json"
    bad.write_text(json.dumps({"circuit": {"name": "cubic"}}))
    result = runner.invoke(cli.app, ["compile", "-t", str(bad), "-o", str(tmp_path / "out")])
    assert result.exit_code == 1
    assert "ConfigurationError" in result.output


def test_compile_accelerated_run_with_samples_csv(tmp_path, t0, make_run, prover_log):
    runs = [make_run(t0), make_run(t0 + timedelta(seconds=1))]
    benchmark = BenchmarkRun(
        circuit=CircuitInfo(name="cubic", curve="bn254", nb_constraints=3, acceleration=True),
        arithmetization_start=t0 - timedelta(seconds=2),
        arithmetization_end=t0 - timedelta(seconds=1),
        setup_start=t0 - timedelta(seconds=1),
        setup_end=t0,
        runs=runs,
        log_text=prover_log([True, True], True, [(30, 60), (25, 70)]),
    )
    run_path = tmp_path / "run.json"
    run_path.write_text(json.dumps(benchmark.to_dict()))

    samples_path = tmp_path / "samples.csv"
    with open(samples_path, "w", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(["timestamp", "utilization_percent", "memory_used_bytes", "power_milliwatts"])
        for offset in range(0, 1300, 5):
            moment = t0 + timedelta(milliseconds=offset)
            writer.writerow([moment.isoformat(), 40, 2 * 1024 * 1024, 100_000])

    output = tmp_path / "reports"
    result = runner.invoke(
        cli.app,
        ["compile", "-t", str(run_path), "-s", str(samples_path), "-o", str(output)],
    )

    assert result.exit_code == 0, result.output
    with open(output / "benchmark-0" / "gpu_stats.csv", newline="") as handle:
        stats = list(csv.reader(handle))
    assert stats[1][2] == "40.00"
    assert stats[1][4] == "2.000"
    assert stats[-1][0] == "all"


def test_probe_rejects_unknown_backend():
    result = runner.invoke(cli.app, ["probe", "--backend", "tpu"])
    assert result.exit_code == 1
    assert "ConfigurationError" in result.output


def test_probe_prints_reading(monkeypatch):
    class StubReader:
        name = "stub"

        def __enter__(self):
            return self

        def __exit__(self, *_args):
            return None

        def read(self):
            return HardwareReading(utilization_percent=12, memory_used_bytes=3 * 1024 * 1024, power_milliwatts=4200)

    monkeypatch.setattr(cli, "create_reader", lambda _config: StubReader())
    result = runner.invoke(cli.app, ["probe"])

    assert result.exit_code == 0, result.output
    assert "stub reading" in result.output
    assert "3.00" in result.output
    assert "4200" in result.output


def test_compile_rejects_malformed_samples_file(tmp_path, recorded_benchmark):
    samples_path = tmp_path / "samples.csv"
    samples_path.write_text("timestamp,utilization_percent,memory_used_bytes,power_milliwatts\nyesterday,1,2,3\n")
    output = tmp_path / "reports"
    result = runner.invoke(
        cli.app,
        ["compile", "-t", str(recorded_benchmark), "-s", str(samples_path), "-o", str(output)],
    )

    assert result.exit_code == 1
    assert "ConfigurationError" in result.output
    assert not output.exists()
