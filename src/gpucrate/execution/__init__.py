"""
Execution layer for gpucrate.

Builds container specifications and engine invocations.
"""

from .command_builder import RunMode, build_build_args, build_exec_args, build_run_args
from .container_spec import ContainerSpec, Mount, ResourceLimits, build_container_spec

__all__ = [
    "RunMode",
    "build_build_args",
    "build_exec_args",
    "build_run_args",
    "ContainerSpec",
    "Mount",
    "ResourceLimits",
    "build_container_spec",
]
