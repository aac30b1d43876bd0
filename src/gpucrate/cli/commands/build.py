#!/usr/bin/env python3
"""
Build command for gpucrate CLI
"""

import typer
from rich.panel import Panel

try:
    from typing import Annotated  # Python 3.9+
except ImportError:
    from typing_extensions import Annotated  # Python 3.8

from gpucrate.core.errors import GpuCrateError

from ..utils import (
    ConfigOption,
    EngineOption,
    VerboseOption,
    console,
    create_manager,
    exit_with,
    fail,
    setup_logging,
)


def build(
    no_cache: Annotated[
        bool, typer.Option("--no-cache", help="Rebuild the image without using the cache")
    ] = False,
    config: ConfigOption = None,
    engine: EngineOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🔨 Build the workload image.

    Builds the runtime stage of the Dockerfile with the detected engine.
    Container state is not touched.
    """
    setup_logging(verbose)

    try:
        manager = create_manager(config, engine, verbose)
        console.print(
            Panel(
                f"🔨 [bold cyan]Building image[/bold cyan] [yellow]{manager.settings.image}[/yellow]\n"
                f"Target: [yellow]{manager.settings.build_target}[/yellow]",
                title="Image Build",
                border_style="blue",
            )
        )
        returncode = manager.build(no_cache=no_cache)
    except GpuCrateError as e:
        fail(e, verbose)

    if returncode == 0:
        console.print(f"✅ [bold green]Image built successfully: {manager.settings.image}[/bold green]")
    exit_with(returncode)
