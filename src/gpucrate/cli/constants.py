#!/usr/bin/env python3
"""
Constants and configuration for gpucrate CLI
"""


# Exit codes
class ExitCode:
    """Exit codes for CLI commands.

    Engine subprocess statuses from build, run and exec are passed through
    unchanged; gpucrate's own failures always exit with FAILURE.
    """

    SUCCESS = 0
    FAILURE = 1


# Default file paths and values
DEFAULT_VALIDATION_ROOT = "."
