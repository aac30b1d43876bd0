#!/usr/bin/env python3
"""Module to run container engine commands.

This module provides a class that wraps a single container engine binary
(podman or docker) and reports container state for a fixed container name.
"""
# built-in modules
import logging
import typing
from dataclasses import dataclass
from enum import Enum
# user-defined modules
from gpucrate.core.console import Console
from gpucrate.core.errors import ContainerAlreadyExists, EngineCommandError

logger = logging.getLogger(__name__)

# Engine output fragments that mean the container name is already taken.
NAME_CONFLICT_MARKERS = ("already in use", "already exists")
# Engine output fragments that mean the container does not exist.
MISSING_CONTAINER_MARKERS = ("no such container", "no container with name or id")


class ContainerState(Enum):
    """Existence and run state of a named container."""
    ABSENT = "absent"
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class EngineInfo:
    """Identity of the detected container engine.

    Attributes:
        name (str): The engine name, podman or docker.
        path (str): The resolved binary path.
        version (str): The output of ``<engine> --version``.
    """
    name: str
    path: str
    version: str


class ContainerEngine:
    """Class to run commands through a container engine.

    Attributes:
        info (EngineInfo): The engine identity.
        console (Console): The console object.
    """

    def __init__(self, info: EngineInfo, console: typing.Optional[Console] = None) -> None:
        self.info = info
        self.console = console if console is not None else Console()

    @property
    def name(self) -> str:
        return self.info.name

    def _cmd(self, *args: str) -> typing.List[str]:
        return [self.info.name, *args]

    def system_info(self) -> str:
        """Return ``<engine> info`` output, including error text.

        The command is allowed to fail so that partially configured engines
        still report whatever they can.
        """
        return self.console.sh(self._cmd("info"), canFail=True, timeout=60)

    def container_state(self, container_name: str) -> ContainerState:
        """Report the state of the container holding ``container_name``."""
        output = self.console.sh(
            self._cmd("ps", "-a", "--format", "{{.Names}}\t{{.State}}"),
            timeout=30,
        )
        for line in output.splitlines():
            name, _, state = line.partition("\t")
            if name.strip() != container_name:
                continue
            if state.strip().lower().startswith("running"):
                return ContainerState.RUNNING
            return ContainerState.STOPPED
        return ContainerState.ABSENT

    def stop(self, container_name: str, grace_seconds: int = 10) -> None:
        """Stop a container, ignoring "no such container" errors."""
        self._ignore_missing(
            self._cmd("stop", "--time", str(grace_seconds), container_name),
            timeout=grace_seconds + 60,
        )

    def remove(self, container_name: str) -> None:
        """Force-remove a container, ignoring "no such container" errors."""
        self._ignore_missing(self._cmd("rm", "-f", container_name), timeout=120)

    def _ignore_missing(self, command: typing.List[str], timeout: int) -> None:
        try:
            self.console.sh(command, timeout=timeout)
        except EngineCommandError as e:
            if any(marker in e.output.lower() for marker in MISSING_CONTAINER_MARKERS):
                logger.debug("Container already absent: %s", e.output)
                return
            raise

    def create_detached(self, command: typing.List[str], container_name: str, timeout: int = 300) -> str:
        """Run a detached ``run -d`` invocation and return the container id.

        Raises:
            ContainerAlreadyExists: If the engine reports a name conflict.
            EngineCommandError: For any other engine failure.
        """
        try:
            output = self.console.sh(command, timeout=timeout)
        except EngineCommandError as e:
            if any(marker in e.output.lower() for marker in NAME_CONFLICT_MARKERS):
                raise ContainerAlreadyExists(
                    f"Container name {container_name} is already in use",
                    cause=e,
                ) from e
            raise
        # Image pulls print progress before the id; the id is the last line.
        lines = output.splitlines()
        return lines[-1].strip() if lines else ""

    def compose_version(self) -> str:
        return self.console.sh(self._cmd("compose", "version"), timeout=60)

    def compose_config(self, compose_file: str) -> str:
        """Have the engine render a compose file; raises on invalid files."""
        return self.console.sh(self._cmd("compose", "-f", compose_file, "config"), timeout=60)
