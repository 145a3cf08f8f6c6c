"""
LiveSync CLI Main Entry Point.

Provides the command-line interface for configuring, running and
inspecting synchronization cycles.
"""

from __future__ import annotations

import json
import shutil
import signal
import sys
from pathlib import Path
from typing import Any

import click
import humanize
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from livesync import __version__
from livesync.adapters.factory import AdapterFactory
from livesync.core.config import (
    DEFAULT_CONFIG_PATH,
    LiveSyncConfig,
    Location,
    LocationType,
    SyncConfiguration,
    SyncSetting,
)
from livesync.core.errors import ConfigurationError
from livesync.core.logging import setup_logging
from livesync.core.models import LocationOutcome
from livesync.service import systemd
from livesync.service.worker import SyncWorker

console = Console()

OUTCOME_STYLES = {
    LocationOutcome.OK.name: "green",
    LocationOutcome.UNREACHABLE.name: "yellow",
    LocationOutcome.FAILED.name: "red",
    LocationOutcome.CANCELLED.name: "magenta",
}


def get_config(ctx: click.Context) -> LiveSyncConfig:
    """Load configuration once per invocation and set up logging."""
    if "config" not in ctx.obj:
        try:
            config = LiveSyncConfig.load(ctx.obj["config_path"])
            config.ensure_directories()
        except ConfigurationError as e:
            raise click.ClickException(str(e)) from e
        if ctx.obj.get("verbose"):
            config.logging.level = "DEBUG"
        setup_logging(config.logging)
        ctx.obj["config"] = config
    return ctx.obj["config"]


def sample_config() -> LiveSyncConfig:
    """Configuration written by `livesync init`."""
    return LiveSyncConfig(
        sync=SyncConfiguration(
            sync_settings=[
                SyncSetting(
                    name="Documents",
                    file_extensions=[".txt", ".md"],
                    locations=[
                        Location(path=str(Path.home() / "Documents")),
                        Location(path="/mnt/share/Documents", type=LocationType.FILE_SHARE),
                        Location(
                            path="/documents",
                            type=LocationType.FTP,
                            ftp_host="ftp.example.com",
                            username="sync",
                            password="change-me",
                        ),
                    ],
                )
            ]
        )
    )


@click.group()
@click.version_option(version=__version__, prog_name="LiveSync")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to configuration file",
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to the console")
@click.pass_context
def cli(ctx: click.Context, config_path: Path, json_output: bool, verbose: bool) -> None:
    """
    LiveSync - Keep files consistent across folders, shares and FTP servers.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["json_output"] = json_output
    ctx.obj["verbose"] = verbose


@cli.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
@click.pass_context
def init_config(ctx: click.Context, force: bool) -> None:
    """Write a sample configuration file."""
    path: Path = ctx.obj["config_path"]
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists (use --force to overwrite)")
    sample_config().save(path)
    console.print(f"[green]Wrote sample configuration to {path}[/green]")


@cli.command("check")
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Validate the configuration."""
    config = get_config(ctx)
    problems = config.validate_settings()

    factory = AdapterFactory(ftp_timeout=config.sync.ftp_timeout_seconds)
    for setting in config.sync.sync_settings:
        for location in setting.locations:
            try:
                factory.create(
                    config.sync.cache_directory / setting.name,
                    location,
                    setting.file_extensions,
                    config.sync.max_backups,
                )
            except ConfigurationError as e:
                problems.append(f"{setting.name}: {location.describe()}: {e}")

    if ctx.obj.get("json_output"):
        click.echo(json.dumps({"valid": not problems, "problems": problems}, indent=2))
    else:
        table = Table(title="Sync Settings")
        table.add_column("Setting", style="cyan")
        table.add_column("Extensions", style="magenta")
        table.add_column("Location", style="white")
        table.add_column("Type", style="yellow")
        table.add_column("Renames", style="green")
        for setting in config.sync.sync_settings:
            for index, location in enumerate(setting.locations):
                table.add_row(
                    setting.name if index == 0 else "",
                    ", ".join(setting.file_extensions) if index == 0 else "",
                    location.describe(),
                    location.type.value,
                    ", ".join(f"{k}→{v}" for k, v in location.rename_mappings.items()),
                )
        console.print(table)
        console.print(
            f"Cache: {config.sync.cache_directory}  "
            f"Max backups: {config.sync.max_backups}  "
            f"Interval: {humanize.naturaldelta(config.sync.interval_seconds)}"
        )
        for problem in problems:
            console.print(f"[red]✗ {problem}[/red]")
        if not problems:
            console.print("[green]✓ Configuration is valid[/green]")

    if problems:
        sys.exit(1)


@cli.command("sync")
@click.option("--setting", "-s", "names", multiple=True, help="Only synchronize this setting")
@click.pass_context
def sync_once(ctx: click.Context, names: tuple[str, ...]) -> None:
    """Run one synchronization cycle."""
    config = get_config(ctx)
    worker = SyncWorker(config)
    try:
        reports = worker.run_once(names or None)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    if ctx.obj.get("json_output"):
        click.echo(json.dumps([report.to_dict() for report in reports], indent=2))
        return

    for report in reports:
        print_report(report.to_dict())


@cli.command("run")
@click.pass_context
def run_worker(ctx: click.Context) -> None:
    """Synchronize on a fixed interval until interrupted."""
    config = get_config(ctx)
    worker = SyncWorker(config)
    signal.signal(signal.SIGTERM, lambda signum, frame: worker.stop())

    console.print(
        f"[cyan]Synchronizing {len(config.sync.sync_settings)} setting(s) every "
        f"{humanize.naturaldelta(config.sync.interval_seconds)}[/cyan]"
    )
    try:
        worker.run_forever()
    except KeyboardInterrupt:
        worker.stop()
        console.print("\n[yellow]Stopped[/yellow]")


@cli.command("status")
@click.pass_context
def show_status(ctx: click.Context) -> None:
    """Show the result of the last synchronization cycle."""
    config = get_config(ctx)
    status = SyncWorker(config).load_status()

    if ctx.obj.get("json_output"):
        click.echo(json.dumps(status, indent=2))
        return

    if status is None:
        console.print("[yellow]No synchronization has run yet[/yellow]")
        return

    console.print(f"Last run saved at {status['saved_at']}")
    for report in status["reports"]:
        print_report(report)


@cli.group("service")
def service() -> None:
    """Manage the systemd user service."""


@service.command("install")
@click.option("--no-enable", is_flag=True, help="Only write the unit file")
@click.option("--unit-dir", type=click.Path(file_okay=False, path_type=Path), help="Unit directory")
@click.pass_context
def service_install(ctx: click.Context, no_enable: bool, unit_dir: Path | None) -> None:
    """Install the LiveSync systemd unit."""
    executable = shutil.which("livesync") or "livesync"
    result = systemd.install_service(
        unit_dir=unit_dir,
        executable=executable,
        config_path=ctx.obj["config_path"],
        enable=not no_enable and systemd.systemd_available(),
    )
    console.print(
        Panel(
            f"[cyan]Installed:[/cyan] {result['installed']}\n[cyan]Enabled:[/cyan] {result['enabled']}",
            title="LiveSync Service",
        )
    )


@service.command("uninstall")
@click.option("--unit-dir", type=click.Path(file_okay=False, path_type=Path), help="Unit directory")
def service_uninstall(unit_dir: Path | None) -> None:
    """Remove the LiveSync systemd unit."""
    result = systemd.uninstall_service(unit_dir=unit_dir, disable=systemd.systemd_available())
    console.print(
        Panel(
            f"[cyan]Disabled:[/cyan] {result['disabled']}\n[cyan]Removed:[/cyan] {result['removed']}",
            title="LiveSync Service",
        )
    )


def print_report(report: dict[str, Any]) -> None:
    """Render one cycle report (as produced by SyncReport.to_dict)."""
    table = Table(title=f"Sync: {report['setting']}")
    table.add_column("Phase", style="cyan")
    table.add_column("Location", style="white")
    table.add_column("Outcome")
    table.add_column("Copied", justify="right", style="green")
    table.add_column("Unchanged", justify="right")
    table.add_column("Up to date", justify="right")
    table.add_column("Errors", justify="right", style="red")
    table.add_column("Size", justify="right")

    for entry in report["pulls"] + report["pushes"]:
        summary = entry["summary"]
        style = OUTCOME_STYLES.get(entry["outcome"], "white")
        table.add_row(
            entry["direction"],
            entry["location"],
            f"[{style}]{entry['outcome']}[/{style}]",
            str(summary["copied"]),
            str(summary["unchanged"]),
            str(summary["skipped"]),
            str(summary["errors"]),
            humanize.naturalsize(summary["bytes_copied"], binary=True),
        )
    console.print(table)

    duration = report.get("duration_seconds") or 0
    line = (
        f"{report['summary']['files_copied']} file(s) copied in "
        f"{humanize.precisedelta(duration, minimum_unit='milliseconds')}"
    )
    if report.get("cancelled"):
        line += " [magenta](stopped at the cycle deadline)[/magenta]"
    console.print(line)


def main() -> None:
    """Main entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
