"""
Command-line interface for zk-benchmark-lib.

Compiles report sets from recorded benchmark runs and probes the hardware
readers used by the sampler.
"""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from zkb_analytics.log_phases import get_layout
from zkb_analytics.report import ReportCompiler
from zkb_common.errors import ConfigurationError, ZKBError
from zkb_common.logging import configure_logging
from zkb_runner.metric_collectors import create_reader
from zkb_runner.models.config import BenchmarkConfig, SamplerConfig
from zkb_runner.models.timings import BenchmarkRun, Sample, load_samples_csv

app = typer.Typer(help="Compile zk proving benchmark reports and probe telemetry readers.", no_args_is_help=True)
console = Console()


@app.callback()
def entry(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Render logs as JSON."),
) -> None:
    """Configure logging before any command runs."""
    configure_logging(debug=debug, json=json_logs or None, force=True)


def _fail(exc: ZKBError) -> None:
    console.print(f"[red]{exc.error_type}:[/red] {exc}")
    if exc.context:
        console.print(exc.context)
    raise typer.Exit(1)


def _load_run(path: Path) -> BenchmarkRun:
    try:
        return BenchmarkRun.from_dict(json.loads(path.read_text()))
    except (ValueError, KeyError, TypeError) as exc:
        raise ConfigurationError(
            "Invalid recorded benchmark run", context={"path": path}, cause=exc
        ) from exc


def _load_samples(path: Path) -> list[Sample]:
    try:
        return load_samples_csv(path)
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise ConfigurationError(
            "Invalid hardware samples file", context={"path": path}, cause=exc
        ) from exc


@app.command("compile")
def compile_report(
    timings: Path = typer.Option(..., "--timings", "-t", exists=True, dir_okay=False, help="Recorded benchmark run (JSON)."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False, help="Benchmark configuration (JSON)."),
    log: Optional[Path] = typer.Option(None, "--log", "-l", exists=True, dir_okay=False, help="Prover log replacing the one stored with the run."),
    samples: Optional[Path] = typer.Option(None, "--samples", "-s", exists=True, dir_okay=False, help="Hardware samples CSV replacing the stored ones."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Root directory for benchmark-<n> folders."),
) -> None:
    """Compile the report set of a recorded benchmark run."""
    try:
        cfg = BenchmarkConfig.load(config) if config else BenchmarkConfig()
        cfg = cfg.with_env_overrides()
        benchmark = _load_run(timings)
        overrides = {}
        if log is not None:
            overrides["log_text"] = log.read_text()
        if samples is not None:
            overrides["samples"] = _load_samples(samples)
        if overrides:
            benchmark = replace(benchmark, **overrides)
        compiler = ReportCompiler(output or cfg.output_dir, get_layout(cfg.log_layout_version))
        folder = compiler.compile_and_write(benchmark)
    except ZKBError as exc:
        _fail(exc)
        return
    console.print(f"Benchmark results written in [bold]{folder}[/bold]")


def _sampler_config(backend: str, device: int) -> SamplerConfig:
    try:
        return SamplerConfig(backend=backend, device_index=device)
    except ValidationError as exc:
        raise ConfigurationError(
            "Invalid sampler backend", context={"backend": backend}, cause=exc
        ) from exc


@app.command("probe")
def probe(
    backend: str = typer.Option("psutil", "--backend", "-b", help="Reader backend (nvml or psutil)."),
    device: int = typer.Option(0, "--device", "-d", min=0, help="Accelerator index for nvml."),
) -> None:
    """Take one hardware reading and print it."""
    try:
        reader = create_reader(_sampler_config(backend, device))
        with reader:
            reading = reader.read()
    except ZKBError as exc:
        _fail(exc)
        return

    table = Table(title=f"{reader.name} reading", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Utilization (%)", str(reading.utilization_percent))
    table.add_row("Memory used (MiB)", f"{reading.memory_used_bytes / (1024 * 1024):.2f}")
    table.add_row("Power (mW)", str(reading.power_milliwatts))
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
