"""CLI for blkstat.

Provides a rich command-line interface using Typer for:
- Serving live per-device I/O rates over HTTP
- Taking a one-off sample from the terminal
- Generating a sample configuration file
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from blkstat import __version__
from blkstat.core.config import build_config, load_config
from blkstat.core.schemas import FailurePolicy, ServerConfig
from blkstat.monitoring.pool import SamplerPool
from blkstat.monitoring.sampler import SAMPLER_ERRORS, DeviceSampler, TickResult
from blkstat.monitoring.store import SnapshotStore
from blkstat.service.server import create_app, create_server
from blkstat.utils.logging import setup_logging

app = typer.Typer(
    name="blkstat",
    help="Per-device block I/O rates over HTTP",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"blkstat {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """blkstat - sample /sys/block/<device>/stat and serve rates as JSON."""


def _resolve_config(
    config: Path | None,
    sample_interval: float | None,
    listen: str | None,
    devices: str | None,
    sys_block_root: Path | None,
    failure_policy: FailurePolicy | None,
) -> ServerConfig:
    """Load the config file (if any) and apply command-line overrides."""
    overrides = {
        "sample_interval_seconds": sample_interval,
        "listen_address": listen,
        "devices": devices,
        "sys_block_root": sys_block_root,
        "failure_policy": failure_policy,
    }
    try:
        if config is not None:
            console.print(f"[bold blue]Loading configuration from {config}[/]")
            return load_config(config, overrides)
        return build_config(None, overrides)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error loading config: {escape(str(e))}[/]")
        raise typer.Exit(1) from e


@app.command()
def serve(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to configuration file (YAML/JSON)"
    ),
    sample_interval: float | None = typer.Option(
        None, "--sample-interval", "-i", help="Sample interval in seconds (default 1)"
    ),
    listen: str | None = typer.Option(
        None, "--listen", "--http-port", "-l", help="HTTP listen address or port (default :8080)"
    ),
    devices: str | None = typer.Option(
        None, "--devices", "-d", help="Comma-separated device names (default sda)"
    ),
    sys_block_root: Path | None = typer.Option(
        None, "--sys-block-root", help="Directory holding <device>/stat (default /sys/block)"
    ),
    failure_policy: FailurePolicy | None = typer.Option(
        None, "--failure-policy", help="isolate: keep other devices running; escalate: exit"
    ),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file in addition to console"
    ),
    json_logs: bool = typer.Option(
        False, "--json-logs", help="Output logs in JSON format (for programmatic parsing)"
    ),
) -> None:
    """Sample the configured devices and serve the latest rates on GET /."""
    setup_logging(
        level=log_level, log_file=log_file, json_format=json_logs, rich_console=not json_logs
    )
    server_config = _resolve_config(
        config, sample_interval, listen, devices, sys_block_root, failure_policy
    )
    _show_config_summary(server_config)

    store = SnapshotStore(server_config.devices)
    pool = SamplerPool(server_config, store)
    server = create_server(create_app(store), server_config, log_level=log_level)

    def _on_fatal(device: str, error: Exception) -> None:
        logger.error(f"Device {device} failed, shutting down: {error}")
        server.should_exit = True

    pool.on_fatal = _on_fatal

    try:
        pool.start()
    except SAMPLER_ERRORS as e:
        console.print(f"[bold red]Error starting sampler: {escape(str(e))}[/]")
        raise typer.Exit(1) from e

    try:
        server.run()
    finally:
        pool.stop()

    if pool.fatal_error is not None:
        error = escape(str(pool.fatal_error))
        console.print(f"[bold red]Sampler for {pool.fatal_device} failed: {error}[/]")
        raise typer.Exit(1)


@app.command()
def sample(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to configuration file (YAML/JSON)"
    ),
    sample_interval: float | None = typer.Option(
        None, "--sample-interval", "-i", help="Seconds between the two reads (default 1)"
    ),
    devices: str | None = typer.Option(
        None, "--devices", "-d", help="Comma-separated device names (default sda)"
    ),
    sys_block_root: Path | None = typer.Option(
        None, "--sys-block-root", help="Directory holding <device>/stat (default /sys/block)"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    """Take one sample of every device and print the rates."""
    setup_logging(level=log_level)
    server_config = _resolve_config(config, sample_interval, None, devices, sys_block_root, None)

    store = SnapshotStore(server_config.devices)
    samplers = [
        DeviceSampler(
            device,
            store,
            interval_seconds=server_config.sample_interval_seconds,
            root=server_config.sys_block_root,
        )
        for device in server_config.devices
    ]

    baselines = {s.device: s.tick() for s in samplers}
    if any(r.ok for r in baselines.values()):
        time.sleep(server_config.sample_interval_seconds)

    results: list[TickResult] = []
    for s in samplers:
        baseline = baselines[s.device]
        results.append(s.tick() if baseline.ok else baseline)
        s.stop()

    _show_sample_table(results)

    if not all(r.ok for r in results):
        raise typer.Exit(1)


@app.command()
def init_config(
    output: Path = typer.Option(
        Path("blkstat.yaml"), "--output", "-o", help="Output configuration file"
    ),
) -> None:
    """Generate a sample configuration file."""
    sample_config = """\
# blkstat configuration

# Seconds between samples. Rates are normalized by this value.
sample_interval_seconds: 1.0

# HTTP listen address: "[host]:port" or a bare port number
listen_address: ":8080"

# Block devices to monitor (names under /sys/block)
devices:
  - sda

# Root of the per-device counter files
sys_block_root: /sys/block

# isolate: a failing device is dropped from the output and retried
# escalate: any device failure stops the server
failure_policy: isolate
"""
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(sample_config)
    console.print(f"[bold green]Sample configuration written to {output}[/]")


def _show_config_summary(config: ServerConfig) -> None:
    """Display a summary of the server configuration."""
    table = Table(title="blkstat Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Devices", ", ".join(config.devices))
    table.add_row("Sample Interval", f"{config.sample_interval_seconds:g}s")
    table.add_row("Listen", config.listen_address)
    table.add_row("Counter Root", str(config.sys_block_root))
    table.add_row("Failure Policy", config.failure_policy.value)

    console.print(table)


def _show_sample_table(results: list[TickResult]) -> None:
    """Display one row of rates per device."""
    table = Table(title="Block I/O Rates")
    table.add_column("Device", style="cyan")
    table.add_column("Reads/s", justify="right")
    table.add_column("Read KB/s", justify="right")
    table.add_column("Read Wait ms", justify="right")
    table.add_column("Writes/s", justify="right")
    table.add_column("Write KB/s", justify="right")
    table.add_column("Write Wait ms", justify="right")
    table.add_column("In Flight", justify="right")
    table.add_column("Queue Wait ms", justify="right")

    for r in results:
        snap = r.snapshot
        if snap is None:
            table.add_row(r.device, f"[red]{escape(str(r.error or 'no sample'))}[/]")
            continue
        table.add_row(
            r.device,
            f"{snap.reads_per_second:.1f}",
            f"{snap.bytes_read_per_second / 1024:.1f}",
            f"{snap.read_wait_milliseconds:.1f}",
            f"{snap.writes_per_second:.1f}",
            f"{snap.bytes_written_per_second / 1024:.1f}",
            f"{snap.write_wait_milliseconds:.1f}",
            str(snap.in_flight),
            f"{snap.queue_wait_milliseconds:.1f}",
        )

    console.print(table)


if __name__ == "__main__":
    app()
