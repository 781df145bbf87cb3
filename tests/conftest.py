import json
from collections import defaultdict
from datetime import datetime, timedelta

import pytest
from rich.console import Console
from rich.table import Table

from zkb_runner.models.timings import RecordedRun

KNOWN_MARKERS = {"unit_common", "unit_runner", "unit_analytics", "unit_ui"}

T0 = datetime(2024, 1, 1, 12, 0, 0)


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    """Print statistics by marker at the end of the test session."""
    _ = (exitstatus, config)
    marker_stats = defaultdict(lambda: {"passed": 0, "failed": 0, "skipped": 0, "total": 0})

    for outcome in ["passed", "failed", "skipped"]:
        for report in terminalreporter.stats.get(outcome, []):
            if report.when == "call" or (report.when == "setup" and report.outcome == "skipped"):
                for marker in KNOWN_MARKERS:
                    if marker in report.keywords:
                        stats = marker_stats[marker]
                        stats[outcome] += 1
                        stats["total"] += 1

    if not marker_stats:
        return

    table = Table(title="Test Statistics by Marker", show_header=True, header_style="bold magenta")
    table.add_column("Marker", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Passed", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Skipped", justify="right", style="yellow")
    for marker in sorted(marker_stats):
        stats = marker_stats[marker]
        table.add_row(
            marker,
            str(stats["total"]),
            str(stats["passed"]),
            str(stats["failed"]),
            str(stats["skipped"]),
        )
    Console().print("\n")
    Console().print(table)


def build_prover_log(validity, acceleration, durations, trailing="", curve="bn254"):
    """Render a prover log laid out the way the phase index law expects.

    ``durations`` holds one ``(solution_ms, proof_ms)`` pair per run.
    """
    preamble = 3 if acceleration else 2
    lines = [
        {"level": "debug", "time": "2024-01-01T12:00:00Z", "message": f"preamble {i}", "curve": curve}
        for i in range(preamble)
    ]
    for run, (valid, (solution_ms, proof_ms)) in enumerate(zip(validity, durations)):
        lines.append(
            {"level": "debug", "message": "constraint system solver done", "nbConstraints": 2, "took": solution_ms}
        )
        lines.append(
            {
                "level": "debug",
                "message": "prover done",
                "acceleration": "icicle" if acceleration else "none",
                "backend": "groth16",
                "curve": curve,
                "took": proof_ms,
            }
        )
        if valid:
            lines.append({"level": "debug", "message": "verifier done", "took": 1.5})
    return "\n".join(json.dumps(line) for line in lines) + "\n" + trailing


def recorded_run(start, witness_ms=10, gap_ms=1, prove_ms=100, verify_ms=5, valid=True):
    """A RecordedRun laid out sequentially from ``start``."""
    ms = lambda value: timedelta(milliseconds=value)  # noqa: E731
    witness_end = start + ms(witness_ms)
    prove_start = witness_end + ms(gap_ms)
    prove_end = prove_start + ms(prove_ms)
    verify_start = prove_end + ms(gap_ms)
    return RecordedRun(
        witness_gen_start=start,
        witness_gen_end=witness_end,
        prove_call_start=prove_start,
        prove_call_end=prove_end,
        verify_start=verify_start,
        verify_end=verify_start + ms(verify_ms),
        valid=valid,
    )


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def prover_log():
    return build_prover_log


@pytest.fixture
def make_run():
    return recorded_run
