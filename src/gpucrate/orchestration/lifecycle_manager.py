#!/usr/bin/env python3
"""
Lifecycle Manager - container state machine.

Drives build/run/start/exec/stop/setup-cdi over ContainerState
(ABSENT, STOPPED, RUNNING) for the container named in Settings.

Every mutating subcommand holds the per-name ContainerLock and goes through
reconcile() before creating anything, so repeated or concurrent invocations
converge on at most one container with the configured name.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from gpucrate.core.console import Console
from gpucrate.core.engine import ContainerEngine, ContainerState, EngineInfo
from gpucrate.core.errors import (
    CdiSetupError,
    ContainerAlreadyExists,
    ContainerNotRunning,
    EngineCommandError,
    create_error_context,
)
from gpucrate.core.lock import ContainerLock
from gpucrate.execution.command_builder import (
    RunMode,
    build_build_args,
    build_exec_args,
    build_run_args,
)
from gpucrate.execution.container_spec import ContainerSpec, build_container_spec
from gpucrate.utils.capability_probe import (
    CapabilityProbe,
    GpuExposureMode,
    RuntimeEnvironment,
)
from gpucrate.utils.config_loader import Settings

logger = logging.getLogger(__name__)

EngineFactory = Callable[[EngineInfo, Console], ContainerEngine]


@dataclass(frozen=True)
class ContainerStatus:
    environment: RuntimeEnvironment
    state: ContainerState


class LifecycleManager:
    """State machine over the workload container.

    Attributes:
        settings (Settings): Deployment settings.
        console (Console): Runs engine subprocesses.
        probe (CapabilityProbe): Fresh capability detection per operation.
    """

    def __init__(
        self,
        settings: Settings,
        console: Optional[Console] = None,
        probe: Optional[CapabilityProbe] = None,
        engine_factory: EngineFactory = ContainerEngine,
    ) -> None:
        self.settings = settings
        self.console = console if console is not None else Console()
        self.probe = probe if probe is not None else CapabilityProbe(settings.engine, self.console)
        self.engine_factory = engine_factory

    @property
    def container_name(self) -> str:
        return self.settings.container_name

    def _engine(self, info: EngineInfo) -> ContainerEngine:
        return self.engine_factory(info, self.console)

    def _lock(self) -> ContainerLock:
        return ContainerLock(self.container_name, self.settings.lock_dir, self.settings.lock_timeout)

    def _context(self, operation: str, engine: Optional[EngineInfo] = None):
        return create_error_context(
            operation,
            component="LifecycleManager",
            container_name=self.container_name,
            engine=engine.name if engine else None,
        )

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, engine: ContainerEngine, target: ContainerState) -> ContainerState:
        """Converge the named container toward ``target`` before a mutation.

        ABSENT: stop a running container, then force-remove it. Idempotent.
        RUNNING: leave a running container alone; remove a stopped one so it
            is recreated from a fresh spec.

        Returns:
            The state after reconciliation.
        """
        name = self.container_name
        current = engine.container_state(name)
        logger.debug("Reconciling %s: %s -> %s", name, current.value, target.value)

        if target is ContainerState.STOPPED:
            raise ValueError("reconcile target must be ABSENT or RUNNING")

        if current is ContainerState.ABSENT:
            return current

        if current is ContainerState.RUNNING:
            if target is ContainerState.RUNNING:
                return current
            logger.info("Stopping container: %s", name)
            engine.stop(name)

        logger.warning("Container %s already exists. Removing...", name)
        engine.remove(name)
        return ContainerState.ABSENT

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _container_spec(self, environment: RuntimeEnvironment) -> ContainerSpec:
        return build_container_spec(self.settings, environment)

    @staticmethod
    def _ensure_mount_dirs(spec: ContainerSpec) -> None:
        for mount in spec.mounts:
            if not os.path.isdir(mount.host_path):
                logger.info("Creating host directory %s", mount.host_path)
                os.makedirs(mount.host_path, exist_ok=True)

    def plan(self, mode: RunMode) -> List[str]:
        """Return the run invocation for ``mode`` without touching any state."""
        environment = self.probe.probe()
        return build_run_args(self._container_spec(environment), environment, mode)

    # ------------------------------------------------------------------
    # Subcommands
    # ------------------------------------------------------------------

    def status(self) -> ContainerStatus:
        environment = self.probe.probe()
        state = self._engine(environment.engine).container_state(self.container_name)
        return ContainerStatus(environment=environment, state=state)

    def build(self, no_cache: bool = False) -> int:
        """Build the image. Container state is not touched.

        Returns:
            The engine exit status.
        """
        info = self.probe.detect_engine()
        args = build_build_args(
            info,
            self.settings.image,
            context=self.settings.build_context,
            dockerfile=self.settings.dockerfile,
            target=self.settings.build_target,
            no_cache=no_cache,
        )
        logger.info("Building image %s with %s", self.settings.image, info.name)
        return self.console.attach(args)

    def run(self) -> int:
        """Run the container interactively and block until the session ends.

        The lock is held while the old container is cleared and the new one
        is spawned, then released so ``stop`` from another terminal works
        during the session.

        Returns:
            The engine exit status.
        """
        environment = self.probe.probe()
        spec = self._container_spec(environment)
        args = build_run_args(spec, environment, RunMode.INTERACTIVE)
        engine = self._engine(environment.engine)

        with self._lock():
            self._ensure_mount_dirs(spec)
            self.reconcile(engine, ContainerState.ABSENT)
            logger.info("Starting container: %s", spec.name)
            proc = self.console.spawn(args)

        return self.console.wait(proc)

    def start(self) -> ContainerState:
        """Start the container detached. A running container is left as is.

        Returns:
            ContainerState.RUNNING once the container is confirmed running.

        Raises:
            ContainerAlreadyExists: If a name conflict persists after one retry.
            EngineCommandError: If the engine fails or the container does not stay up.
        """
        environment = self.probe.probe()
        spec = self._container_spec(environment)
        args = build_run_args(spec, environment, RunMode.BACKGROUND)
        engine = self._engine(environment.engine)

        with self._lock():
            if self.reconcile(engine, ContainerState.RUNNING) is ContainerState.RUNNING:
                logger.warning("Container %s is already running; nothing to do", spec.name)
                return ContainerState.RUNNING

            self._ensure_mount_dirs(spec)
            self._create_detached(engine, args)

            state = engine.container_state(spec.name)
            if state is not ContainerState.RUNNING:
                raise EngineCommandError(
                    f"Container {spec.name} was created but is {state.value}",
                    context=self._context("start", environment.engine),
                    suggestions=[f"Inspect logs: {environment.engine.name} logs {spec.name}"],
                )

        logger.info(
            "Container started in background. Use 'gpucrate exec bash' to enter."
        )
        return ContainerState.RUNNING

    def _create_detached(self, engine: ContainerEngine, args: List[str]) -> str:
        try:
            return engine.create_detached(args, self.container_name, self.settings.command_timeout)
        except ContainerAlreadyExists:
            logger.warning("Name conflict on %s; removing and retrying once", self.container_name)
            engine.remove(self.container_name)
            return engine.create_detached(args, self.container_name, self.settings.command_timeout)

    def exec(self, command: Optional[Sequence[str]] = None, tty: bool = True) -> int:
        """Run a command inside the running container.

        Raises:
            ContainerNotRunning: If the container is absent or stopped.
        """
        info = self.probe.detect_engine()
        state = self._engine(info).container_state(self.container_name)
        if state is not ContainerState.RUNNING:
            raise ContainerNotRunning(
                f"Container {self.container_name} is not running ({state.value}).",
                context=self._context("exec", info),
            )
        return self.console.attach(build_exec_args(info, self.container_name, command, tty))

    def stop(self) -> ContainerState:
        """Stop and remove the container. Succeeds when it is already absent."""
        info = self.probe.detect_engine()
        engine = self._engine(info)
        logger.info("Stopping container: %s", self.container_name)
        with self._lock():
            state = self.reconcile(engine, ContainerState.ABSENT)
        logger.info("Container stopped and removed.")
        return state

    def setup_cdi(self) -> GpuExposureMode:
        """Regenerate the CDI descriptor and confirm the engine now advertises GPUs.

        Raises:
            ToolNotFound: If nvidia-ctk is missing.
            CdiSetupError: If generation fails or the engine still does not
                advertise the GPU namespace.
        """
        info = self.probe.detect_engine()
        self.probe.nvidia.generate_cdi_spec(self.settings.cdi_output)
        logger.info("CDI configuration generated at %s", self.settings.cdi_output)

        mode = self.probe.detect_gpu_exposure_mode(info)
        if mode is not GpuExposureMode.CDI:
            raise CdiSetupError(
                f"CDI descriptor written to {self.settings.cdi_output}, "
                f"but {info.name} does not advertise nvidia.com/gpu",
                context=self._context("setup-cdi", info),
                suggestions=[
                    f"Try restarting the {info.name} service",
                    "Check the descriptor: nvidia-ctk cdi list",
                ],
            )
        logger.info("CDI is properly configured!")
        return mode
