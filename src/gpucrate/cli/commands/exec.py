#!/usr/bin/env python3
"""
Exec command for gpucrate CLI
"""

from typing import List, Optional

import typer

try:
    from typing import Annotated  # Python 3.9+
except ImportError:
    from typing_extensions import Annotated  # Python 3.8

from gpucrate.core.errors import GpuCrateError

from ..utils import (
    ConfigOption,
    EngineOption,
    VerboseOption,
    create_manager,
    exit_with,
    fail,
    setup_logging,
)


def exec_command(
    command: Annotated[
        Optional[List[str]],
        typer.Argument(help="Command to run inside the container (default: bash)"),
    ] = None,
    no_tty: Annotated[
        bool, typer.Option("--no-tty", "-T", help="Do not allocate a pseudo-terminal")
    ] = False,
    config: ConfigOption = None,
    engine: EngineOption = None,
    verbose: VerboseOption = False,
) -> None:
    """
    💻 Execute a command in the running container.

    Everything after the first positional argument is passed to the
    container, e.g. `gpucrate exec python gs_icp_slam.py --help`.
    """
    setup_logging(verbose)

    try:
        manager = create_manager(config, engine, verbose)
        returncode = manager.exec(list(command) if command else None, tty=not no_tty)
    except GpuCrateError as e:
        fail(e, verbose)

    exit_with(returncode)
