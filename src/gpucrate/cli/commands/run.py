#!/usr/bin/env python3
"""
Run and start commands for gpucrate CLI
"""

import typer
from rich.panel import Panel

try:
    from typing import Annotated  # Python 3.9+
except ImportError:
    from typing_extensions import Annotated  # Python 3.8

from gpucrate.core.errors import GpuCrateError
from gpucrate.execution.command_builder import RunMode
from gpucrate.orchestration.lifecycle_manager import LifecycleManager

from ..utils import (
    ConfigOption,
    EngineOption,
    VerboseOption,
    console,
    create_manager,
    exit_with,
    fail,
    format_command,
    setup_logging,
)

DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", "-n", help="Print the engine command without running it"),
]


def _print_plan(manager: LifecycleManager, mode: RunMode) -> None:
    console.print(format_command(manager.plan(mode)), soft_wrap=True, markup=False, highlight=False)


def _print_banner(manager: LifecycleManager, title: str) -> None:
    settings = manager.settings
    console.print(
        Panel(
            f"🚀 [bold cyan]{title}[/bold cyan] [yellow]{settings.container_name}[/yellow]\n"
            f"Dataset directory: [yellow]{settings.dataset_dir}[/yellow]\n"
            f"Experiments directory: [yellow]{settings.experiments_dir}[/yellow]",
            title="Container",
            border_style="blue",
        )
    )


def run(
    dry_run: DryRunOption = False,
    config: ConfigOption = None,
    engine: EngineOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🚀 Run the container interactively.

    Removes any existing container with the same name, then attaches a
    terminal session. The container is removed when the session ends.
    """
    setup_logging(verbose)

    try:
        manager = create_manager(config, engine, verbose)
        if dry_run:
            _print_plan(manager, RunMode.INTERACTIVE)
            return
        _print_banner(manager, "Starting interactive session in")
        returncode = manager.run()
    except GpuCrateError as e:
        fail(e, verbose)

    exit_with(returncode)


def start(
    dry_run: DryRunOption = False,
    config: ConfigOption = None,
    engine: EngineOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🟢 Start the container in the background.

    Does nothing if the container is already running. Use `gpucrate exec`
    to enter it.
    """
    setup_logging(verbose)

    try:
        manager = create_manager(config, engine, verbose)
        if dry_run:
            _print_plan(manager, RunMode.BACKGROUND)
            return
        _print_banner(manager, "Starting background container")
        manager.start()
    except GpuCrateError as e:
        fail(e, verbose)

    console.print(
        f"✅ [bold green]Container {manager.container_name} is running.[/bold green] "
        f"Use [cyan]gpucrate exec bash[/cyan] to enter."
    )
