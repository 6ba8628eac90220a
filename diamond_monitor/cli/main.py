"""Main CLI Module - Command-line interface for the Diamond Monitor."""

import asyncio
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Tuple

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..core.config import MonitoringConfig, load_config
from ..core.continuous import ALERT_THRESHOLDS, MIN_INTERVAL, ContinuousMonitor, MonitoringRun
from ..core.errors import ConfigurationError, ModuleRegistrationError
from ..core.system import DiamondMonitoringSystem
from ..core.types import DiamondInfo, NetworkInfo, RunReport, Status
from ..utils.loader import load_object
from ..utils.progress import ConsoleEventListener
from ..utils.report_writer import JSONReportWriter

console = Console()


def get_status_color(status: Status) -> str:
    """Get color for a status value."""
    colors = {
        Status.PASS: "green",
        Status.WARNING: "yellow",
        Status.FAIL: "red",
        Status.SKIPPED: "dim",
    }
    return colors.get(status, "white")


def configure_logging(verbose: bool) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def build_system(module_paths: List[str]) -> DiamondMonitoringSystem:
    """Create a monitoring system with modules loaded from import paths.

    Each path points at a module class (instantiated without arguments) or at
    an already constructed module instance.
    """
    system = DiamondMonitoringSystem()
    for path in module_paths:
        obj = load_object(path)
        module = obj() if isinstance(obj, type) else obj
        system.register_module(module)
    return system


def _load_run_config(config_path: Optional[str]) -> MonitoringConfig:
    if config_path:
        return load_config(config_path)
    return MonitoringConfig()


def _dedupe(paths: List[str]) -> List[str]:
    seen = set()
    unique = []
    for path in paths:
        if path not in seen:
            seen.add(path)
            unique.append(path)
    return unique


def _load_system_or_exit(config: MonitoringConfig, module_paths: tuple) -> DiamondMonitoringSystem:
    try:
        return build_system(_dedupe(list(config.plugins) + list(module_paths)))
    except (ImportError, ValueError, ModuleRegistrationError) as e:
        console.print(f"[red]Error loading modules: {escape(str(e))}[/red]")
        sys.exit(1)


def target_options(func):
    """Options shared by the commands that monitor a diamond."""
    options = [
        click.option("--name", "-n", required=True, help="Diamond name"),
        click.option("--address", "-a", required=True, help="Diamond contract address"),
        click.option("--network", default="localhost", show_default=True, help="Network name"),
        click.option("--chain-id", type=int, default=31337, show_default=True, help="Chain id"),
        click.option("--rpc-url", default=None,
                     help="RPC endpoint (default: $DIAMOND_MONITOR_RPC_URL or http://localhost:8545)"),
        click.option("--config", "-c", "config_path", type=click.Path(exists=True),
                     help="YAML configuration file"),
        click.option("--module", "-m", "module_paths", multiple=True,
                     help="Module import path (package.module:Class), repeatable"),
        click.option("--only", "only", multiple=True, help="Run only these module ids"),
        click.option("--parallel/--sequential", "parallel", default=None,
                     help="Override the configured execution strategy"),
        click.option("--max-concurrency", type=int, default=None, help="Maximum modules in flight"),
        click.option("--timeout", type=float, default=None, help="Per-module timeout in seconds"),
        click.option("--fail-fast", is_flag=True, default=False,
                     help="Stop after the first failed module (sequential only)"),
        click.option("--transport-factory", default=None,
                     help="Callable (package.module:func) building the transport from NetworkInfo"),
        click.option("--fail-on-error", is_flag=True, default=False,
                     help="Exit with status 1 when a run fails"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _prepare_target(
    verbose: bool,
    name: str,
    address: str,
    network: str,
    chain_id: int,
    rpc_url: Optional[str],
    config_path: Optional[str],
    module_paths: tuple,
    parallel: Optional[bool],
    max_concurrency: Optional[int],
    timeout: Optional[float],
    fail_fast: bool,
    transport_factory: Optional[str],
) -> Tuple[MonitoringConfig, DiamondMonitoringSystem, DiamondInfo, Any]:
    """Load config and modules and build the diamond and its transport.

    Exits with status 1 when any of them cannot be loaded.
    """
    try:
        config = _load_run_config(config_path)
    except (ValueError, OSError) as e:
        console.print(f"[red]Could not read configuration: {escape(str(e))}[/red]")
        sys.exit(1)

    if parallel is not None:
        config.execution.parallel_execution = parallel
    if max_concurrency is not None:
        config.execution.max_concurrency = max_concurrency
    if timeout is not None:
        config.execution.timeout = timeout
    if fail_fast:
        config.execution.fail_fast = True
    if verbose:
        config.reporting.verbose = True

    system = _load_system_or_exit(config, module_paths)

    network_info = NetworkInfo(
        name=network,
        chain_id=chain_id,
        rpc_url=rpc_url or os.getenv("DIAMOND_MONITOR_RPC_URL", "http://localhost:8545"),
    )
    diamond = DiamondInfo(name=name, address=address, network=network_info)

    transport: Any = network_info.rpc_url
    if transport_factory:
        try:
            transport = load_object(transport_factory)(network_info)
        except Exception as e:
            console.print(f"[red]Could not create transport: {escape(str(e))}[/red]")
            sys.exit(1)

    return config, system, diamond, transport


@click.group()
@click.version_option(version="1.0.0", prog_name="diamond-monitor")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """Diamond Monitor - Run health checks against a diamond deployment."""
    load_dotenv()
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(verbose)


@cli.command("list-modules")
@click.option("--module", "-m", "module_paths", multiple=True,
              help="Module import path (package.module:Class), repeatable")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True),
              help="YAML configuration file whose plugins are loaded too")
def list_modules(module_paths: tuple, config_path: Optional[str]):
    """List the monitoring modules that would be available to a run."""
    try:
        config = _load_run_config(config_path)
    except (ValueError, OSError) as e:
        console.print(f"[red]Could not read configuration: {escape(str(e))}[/red]")
        sys.exit(1)
    system = _load_system_or_exit(config, module_paths)

    modules = system.list_modules()
    if not modules:
        console.print("[yellow]No modules loaded. Use --module or a config 'plugins' list.[/yellow]")
        return

    table = Table(title="Monitoring Modules")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Version")
    table.add_column("Description", style="dim")

    for module in modules:
        table.add_row(
            module.id,
            module.name,
            getattr(module, "category", ""),
            getattr(module, "version", ""),
            getattr(module, "description", ""),
        )

    console.print(table)


@cli.command("validate-config")
@click.argument("config_path", type=click.Path(exists=True))
@click.option("--module", "-m", "module_paths", multiple=True,
              help="Extra module import path to validate against, repeatable")
def validate_config(config_path: str, module_paths: tuple):
    """Validate a YAML monitoring configuration.

    CONFIG_PATH is the configuration file to check. The modules listed under
    'plugins' (and any --module) are loaded and each enabled module checks
    its own configuration.
    """
    try:
        config = load_config(config_path)
    except (ValueError, OSError) as e:
        console.print(f"[red]Could not read configuration: {escape(str(e))}[/red]")
        sys.exit(1)

    system = _load_system_or_exit(config, module_paths)
    modules = system.list_modules()

    result = config.validate([m.id for m in modules] if modules else None)
    errors = list(result.errors)
    warnings = list(result.warnings)

    for module in modules:
        if not config.settings_for(module.id).enabled:
            continue
        try:
            module_result = module.validate_config(config.module_config(module.id))
        except Exception as e:
            errors.append(f"{module.id}: validation raised: {e}")
            continue
        errors.extend(f"{module.id}: {error}" for error in module_result.errors)
        warnings.extend(f"{module.id}: {warning}" for warning in module_result.warnings)

    for error in errors:
        console.print(f"[red]  ✗ {escape(error)}[/red]")
    for warning in warnings:
        console.print(f"[yellow]  ! {escape(warning)}[/yellow]")

    if errors:
        console.print(f"[red]Configuration is invalid ({len(errors)} error(s))[/red]")
        sys.exit(1)

    console.print(f"[green]Configuration is valid[/green] ({len(modules)} module(s) checked)")


@cli.command("run")
@target_options
@click.option("--output", "-o", type=click.Path(), help="Write the report as JSON to this file")
@click.pass_context
def run(
    ctx: click.Context,
    name: str,
    address: str,
    network: str,
    chain_id: int,
    rpc_url: Optional[str],
    config_path: Optional[str],
    module_paths: tuple,
    only: tuple,
    parallel: Optional[bool],
    max_concurrency: Optional[int],
    timeout: Optional[float],
    fail_fast: bool,
    transport_factory: Optional[str],
    fail_on_error: bool,
    output: Optional[str],
):
    """Run monitoring modules against a diamond once."""
    verbose = ctx.obj.get("verbose", False)
    config, system, diamond, transport = _prepare_target(
        verbose, name, address, network, chain_id, rpc_url, config_path, module_paths,
        parallel, max_concurrency, timeout, fail_fast, transport_factory,
    )

    _print_header(diamond, "Monitoring Run")
    system.add_event_listener(ConsoleEventListener(console=console, show_issues=verbose))

    try:
        report = asyncio.run(system.run_monitoring(
            diamond,
            transport,
            config,
            module_ids=list(only) or None,
            strict=True,
        ))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        sys.exit(1)

    display_report(report)

    if output:
        output_path = Path(output)
        saved = JSONReportWriter(str(output_path.parent)).save(report, output_path.name)
        console.print(f"\nReport written to [cyan]{saved}[/cyan]")

    if fail_on_error and report.status == Status.FAIL:
        sys.exit(1)


@cli.command("monitor")
@target_options
@click.option("--interval", type=float, default=300.0, show_default=True,
              help=f"Seconds between runs (at least {int(MIN_INTERVAL)})")
@click.option("--max-runs", type=int, default=0, show_default=True,
              help="Number of runs before stopping (0 = unlimited)")
@click.option("--alert-threshold", type=click.Choice(list(ALERT_THRESHOLDS)), default="high",
              show_default=True, help="Lowest issue severity that raises an alert")
@click.option("--output-dir", type=click.Path(file_okay=False),
              help="Write one JSON report per run into this directory")
@click.pass_context
def monitor(
    ctx: click.Context,
    name: str,
    address: str,
    network: str,
    chain_id: int,
    rpc_url: Optional[str],
    config_path: Optional[str],
    module_paths: tuple,
    only: tuple,
    parallel: Optional[bool],
    max_concurrency: Optional[int],
    timeout: Optional[float],
    fail_fast: bool,
    transport_factory: Optional[str],
    fail_on_error: bool,
    interval: float,
    max_runs: int,
    alert_threshold: str,
    output_dir: Optional[str],
):
    """Monitor a diamond continuously, one run every INTERVAL seconds."""
    verbose = ctx.obj.get("verbose", False)

    if interval < MIN_INTERVAL:
        console.print(f"[red]Monitoring interval must be at least {int(MIN_INTERVAL)} seconds[/red]")
        sys.exit(1)
    if max_runs < 0:
        console.print("[red]Max runs must be a non-negative number[/red]")
        sys.exit(1)

    config, system, diamond, transport = _prepare_target(
        verbose, name, address, network, chain_id, rpc_url, config_path, module_paths,
        parallel, max_concurrency, timeout, fail_fast, transport_factory,
    )

    save_report = None
    if output_dir:
        writer = JSONReportWriter(output_dir)

        def save_report(report: RunReport, run_number: int) -> str:
            return writer.save(report, run_number=run_number)

    _print_header(diamond, "Continuous Monitoring")
    console.print(
        f"Interval: {interval:g}s | Max runs: {max_runs or 'unlimited'} | "
        f"Alert threshold: {alert_threshold}\n[dim]Press Ctrl+C to stop[/dim]"
    )

    if verbose:
        system.add_event_listener(ConsoleEventListener(console=console, show_issues=True))

    monitor_loop = ContinuousMonitor(
        system,
        diamond,
        transport,
        config,
        module_ids=list(only) or None,
        interval=interval,
        max_runs=max_runs,
        alert_threshold=ALERT_THRESHOLDS[alert_threshold],
        on_run=display_run_summary,
        save_report=save_report,
    )

    try:
        runs = asyncio.run(monitor_loop.start())
    except KeyboardInterrupt:
        runs = monitor_loop.runs
        console.print("\n[yellow]Monitoring stopped[/yellow]")

    console.print(f"\n[blue]Total monitoring runs completed: {len(runs)}[/blue]")

    if monitor_loop.aborted:
        console.print(
            f"[red]Stopped after {monitor_loop.consecutive_failures} consecutive failed runs[/red]"
        )
        sys.exit(1)

    if fail_on_error and any(r.failed for r in runs):
        sys.exit(1)


def _print_header(diamond: DiamondInfo, title: str) -> None:
    console.print(Panel.fit(
        f"[bold blue]Diamond Monitor[/bold blue]\n"
        f"Diamond: [cyan]{escape(diamond.name)}[/cyan] ({escape(diamond.address)})\n"
        f"Network: [cyan]{escape(diamond.network.name)}[/cyan] "
        f"(chain id {diamond.network.chain_id})",
        title=title,
        border_style="blue",
    ))


def display_run_summary(run: MonitoringRun) -> None:
    """Print one line per continuous monitoring run, plus its alerts."""
    report = run.report
    summary = report.summary
    color = get_status_color(summary.status)
    stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    console.print(
        f"[{color}]{summary.status.icon} Run #{run.number} at {stamp}: "
        f"{summary.status.value}[/{color}] ({report.duration_ms}ms)  "
        f"checks {summary.total_checks} | passed {summary.passed} | "
        f"failed {summary.failed} | warnings {summary.warnings}"
    )
    if report.error:
        console.print(f"   [red]{escape(report.error)}[/red]")

    if run.alerts:
        console.print(f"[bold red]🚨 ALERT: {len(run.alerts)} issue(s) at or above threshold[/bold red]")
        for issue in run.alerts:
            console.print(f"   [red]• {escape(issue.title)} ({issue.severity.value})[/red]")

    if run.output_path:
        console.print(f"   [dim]Report saved: {escape(run.output_path)}[/dim]")


def display_report(report: RunReport) -> None:
    """Print a summary of a run report."""
    summary = report.summary
    color = get_status_color(summary.status)

    table = Table(title="Module Results")
    table.add_column("Module", style="cyan")
    table.add_column("Status")
    table.add_column("Issues", justify="right")
    table.add_column("Duration", justify="right")

    for result in report.modules:
        result_color = get_status_color(result.status)
        table.add_row(
            escape(result.module_name),
            f"[{result_color}]{result.status.value}[/{result_color}]",
            str(len(result.issues)),
            f"{result.duration_ms}ms",
        )

    console.print()
    console.print(table)
    console.print(
        f"\n[bold]Overall:[/bold] [{color}]{summary.status.value}[/{color}]  "
        f"passed {summary.passed}, warnings {summary.warnings}, "
        f"failed {summary.failed}, skipped {summary.skipped} "
        f"({report.duration_ms}ms)"
    )

    for warning in report.warnings:
        console.print(f"[yellow]! {escape(warning)}[/yellow]")

    if report.recommendations:
        console.print("\n[bold]Recommendations:[/bold]")
        for recommendation in report.recommendations:
            console.print(f"  • {escape(recommendation)}")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
