#!/usr/bin/env python3
"""
Stop command for gpucrate CLI
"""

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


def stop(
    config: ConfigOption = None,
    engine: EngineOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    🛑 Stop and remove the container.

    Succeeds when the container does not exist.
    """
    setup_logging(verbose)

    try:
        manager = create_manager(config, engine, verbose)
        manager.stop()
    except GpuCrateError as e:
        fail(e, verbose)

    console.print(f"✅ [bold green]Container {manager.container_name} stopped and removed.[/bold green]")
