#!/usr/bin/env python3
"""
Status command for gpucrate CLI
"""

from gpucrate.core.errors import GpuCrateError

from ..utils import (
    ConfigOption,
    EngineOption,
    VerboseOption,
    create_manager,
    display_status_table,
    fail,
    setup_logging,
)


def status(
    config: ConfigOption = None,
    engine: EngineOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    📋 Show the detected runtime environment and container state.
    """
    setup_logging(verbose)

    try:
        manager = create_manager(config, engine, verbose)
        result = manager.status()
    except GpuCrateError as e:
        fail(e, verbose)

    display_status_table(result, manager.container_name)
