#!/usr/bin/env python3
"""
CLI Commands Package for gpucrate

This package contains one module per subcommand.
"""

from .build import build
from .run import run, start
from .exec import exec_command
from .stop import stop
from .setup_cdi import setup_cdi
from .status import status
from .validate import validate

__all__ = ["build", "run", "start", "exec_command", "stop", "setup_cdi", "status", "validate"]
