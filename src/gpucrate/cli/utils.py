#!/usr/bin/env python3
"""
Utility functions for gpucrate CLI
"""

import logging
import shlex
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

try:
    from typing import Annotated  # Python 3.9+
except ImportError:
    from typing_extensions import Annotated  # Python 3.8

from gpucrate.core.console import Console as ShellConsole
from gpucrate.core.errors import ErrorHandler, GpuCrateError, handle_error, set_error_handler
from gpucrate.orchestration.lifecycle_manager import ContainerStatus, LifecycleManager
from gpucrate.orchestration.validation_pipeline import CheckStatus, ValidationReport
from gpucrate.utils.config_loader import ConfigLoader, Settings
from .constants import ExitCode


# Initialize Rich console
console = Console()

# Options shared by every command
ConfigOption = Annotated[
    Optional[str],
    typer.Option("--config", "-f", help="Settings file (YAML or JSON)"),
]
EngineOption = Annotated[
    Optional[str],
    typer.Option("--engine", "-e", help="Container engine: auto, podman or docker"),
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
]


def setup_logging(verbose: bool = False) -> None:
    """Setup Rich logging configuration and unified error handler."""
    log_level = logging.DEBUG if verbose else logging.INFO

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[rich_handler],
    )

    error_handler = ErrorHandler(console=console, verbose=verbose)
    set_error_handler(error_handler)


def load_settings(
    config_file: Optional[str] = None, engine: Optional[str] = None, **overrides: Any
) -> Settings:
    """Load layered settings with CLI overrides applied last."""
    cli_overrides: Dict[str, Any] = {"engine": engine}
    cli_overrides.update(overrides)
    return ConfigLoader.load_settings(config_file=config_file, overrides=cli_overrides)


def create_manager(
    config_file: Optional[str], engine: Optional[str], verbose: bool
) -> LifecycleManager:
    settings = load_settings(config_file, engine)
    return LifecycleManager(settings, console=ShellConsole(shellVerbose=verbose))


def fail(error: GpuCrateError, verbose: bool) -> None:
    """Report a gpucrate error and exit with FAILURE."""
    handle_error(error, show_traceback=verbose)
    raise typer.Exit(ExitCode.FAILURE)


def exit_with(returncode: int) -> None:
    """Pass an engine exit status through.

    A child killed by signal N reports -N; it is reported as 128+N, the
    status a shell gives the same child.
    """
    if returncode < 0:
        returncode = 128 - returncode
    if returncode != ExitCode.SUCCESS:
        raise typer.Exit(returncode)


def format_command(args: List[str]) -> str:
    return shlex.join(args)


def display_status_table(status: ContainerStatus, container_name: str) -> None:
    """Display runtime environment and container state."""
    environment = status.environment
    table = Table(title="gpucrate status", show_header=True, header_style="bold magenta")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Engine", environment.engine.name)
    table.add_row("Engine version", environment.engine.version)
    table.add_row("GPU", environment.gpu_name)
    if environment.gpu is not None and environment.gpu.driver_version:
        table.add_row("Driver version", environment.gpu.driver_version)
    table.add_row("GPU exposure", environment.exposure.value)
    table.add_row("Container", container_name)

    state_style = {"running": "green", "stopped": "yellow", "absent": "dim"}
    state = status.state.value
    table.add_row("State", f"[{state_style[state]}]{state}[/]")

    console.print(table)


def display_validation_report(report: ValidationReport) -> None:
    """Display validation results, one row per check."""
    icons = {
        CheckStatus.PASS: "✅ Pass",
        CheckStatus.WARN: "⚠️  Warn",
        CheckStatus.FAIL: "❌ Fail",
    }
    table = Table(title="Setup Validation", show_header=True, header_style="bold magenta")
    table.add_column("Index", justify="right", style="dim")
    table.add_column("Check", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Details")

    for index, result in enumerate(report.results, start=1):
        name = f"{result.name} (optional)" if result.optional else result.name
        table.add_row(str(index), name, icons[result.status], result.message)

    console.print(table)
    console.print(
        f"[bold]Summary:[/bold] {len(report.results)} checks, "
        f"[red]{len(report.failures)} failed[/red], "
        f"[yellow]{len(report.warnings)} warnings[/yellow]"
    )
