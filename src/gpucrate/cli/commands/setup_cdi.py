#!/usr/bin/env python3
"""
Setup-cdi command for gpucrate CLI
"""

from rich.panel import Panel

from gpucrate.core.errors import GpuCrateError

from ..utils import (
    ConfigOption,
    EngineOption,
    VerboseOption,
    console,
    create_manager,
    fail,
    setup_logging,
)


def setup_cdi(
    config: ConfigOption = None,
    engine: EngineOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🎮 Set up NVIDIA GPU access via CDI.

    Regenerates the Container Device Interface descriptor with nvidia-ctk
    and confirms the engine now advertises nvidia.com/gpu devices.
    """
    setup_logging(verbose)

    try:
        manager = create_manager(config, engine, verbose)
        console.print(
            Panel(
                f"🎮 [bold cyan]Setting up CDI for NVIDIA GPU[/bold cyan]\n"
                f"Output: [yellow]{manager.settings.cdi_output}[/yellow]",
                title="CDI Setup",
                border_style="blue",
            )
        )
        manager.setup_cdi()
    except GpuCrateError as e:
        fail(e, verbose)

    console.print("✅ [bold green]CDI is properly configured![/bold green]")
