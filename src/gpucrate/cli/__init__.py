#!/usr/bin/env python3
"""
CLI Package for gpucrate

Typer application with one module per subcommand.
"""

from .app import app, cli_main
from .constants import ExitCode, DEFAULT_VALIDATION_ROOT
from .utils import (
    setup_logging,
    load_settings,
    create_manager,
    display_status_table,
    display_validation_report,
)

__all__ = [
    "app",
    "cli_main",
    "ExitCode",
    "DEFAULT_VALIDATION_ROOT",
    "setup_logging",
    "load_settings",
    "create_manager",
    "display_status_table",
    "display_validation_report",
]
