#!/usr/bin/env python3
"""
Validate command for gpucrate CLI
"""

import typer
from rich.panel import Panel

try:
    from typing import Annotated  # Python 3.9+
except ImportError:
    from typing_extensions import Annotated  # Python 3.8

from gpucrate.core.console import Console as ShellConsole
from gpucrate.core.errors import GpuCrateError
from gpucrate.orchestration.validation_pipeline import ValidationPipeline
from gpucrate.utils.capability_probe import CapabilityProbe

from ..constants import DEFAULT_VALIDATION_ROOT, ExitCode
from ..utils import (
    ConfigOption,
    EngineOption,
    VerboseOption,
    console,
    display_validation_report,
    fail,
    load_settings,
    setup_logging,
)


def validate(
    root: Annotated[
        str, typer.Option("--root", "-r", help="Repository root to validate")
    ] = DEFAULT_VALIDATION_ROOT,
    config: ConfigOption = None,
    engine: EngineOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🔍 Validate the container setup without building anything.

    Checks the engine, compose files, repository artifacts and GPU. All
    checks run; the command fails if any required check failed.
    """
    setup_logging(verbose)

    try:
        settings = load_settings(config, engine)
    except GpuCrateError as e:
        fail(e, verbose)

    console.print(
        Panel(
            f"🔍 [bold cyan]Validating setup[/bold cyan] in [yellow]{root}[/yellow]",
            title="Setup Validation",
            border_style="blue",
        )
    )

    shell = ShellConsole(shellVerbose=verbose)
    pipeline = ValidationPipeline(root, probe=CapabilityProbe(settings.engine, shell), console=shell)
    report = pipeline.run()
    display_validation_report(report)

    if not report.passed:
        console.print("❌ [bold red]Validation failed[/bold red]")
        raise typer.Exit(ExitCode.FAILURE)

    console.print("✅ [bold green]All critical checks passed! The container setup is properly configured.[/bold green]")
