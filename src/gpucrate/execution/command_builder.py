#!/usr/bin/env python3
"""
Engine invocation builder.

Pure functions that turn a ContainerSpec and RuntimeEnvironment into an
engine argument vector. Identical inputs always produce identical output in
a fixed order: name, device, privilege, network, shared memory, environment,
mounts, image, trailing command.
"""

from enum import Enum
from typing import List, Optional, Sequence

from gpucrate.core.engine import EngineInfo
from gpucrate.execution.container_spec import ContainerSpec
from gpucrate.utils.capability_probe import GpuExposureMode, RuntimeEnvironment

CDI_DEVICE_ARGS = ("--device", "nvidia.com/gpu=all")
LEGACY_LABEL_ARG = "--security-opt=label=disable"
DEFAULT_EXEC_COMMAND = ("bash",)


class RunMode(Enum):
    INTERACTIVE = "interactive"
    BACKGROUND = "background"


def device_args(environment: RuntimeEnvironment) -> List[str]:
    """GPU device arguments for the exposure mode. Never mixes modes."""
    if environment.exposure is GpuExposureMode.CDI:
        return list(CDI_DEVICE_ARGS)
    if environment.exposure is GpuExposureMode.LEGACY_LABEL:
        args = [LEGACY_LABEL_ARG]
        # docker only reaches the GPU through its nvidia runtime hook
        if environment.engine.name == "docker":
            args.append("--gpus=all")
        return args
    return []


def build_run_args(spec: ContainerSpec, environment: RuntimeEnvironment, mode: RunMode) -> List[str]:
    """Build the ``<engine> run`` argument vector.

    Args:
        spec: The container specification.
        environment: The probed runtime environment.
        mode: INTERACTIVE attaches a TTY and removes the container on exit;
            BACKGROUND detaches and keeps it alive for later exec calls.

    Returns:
        The argument vector, engine binary first.
    """
    args = [environment.engine.name, "run"]
    if mode is RunMode.INTERACTIVE:
        args += ["-it", "--rm"]
    else:
        args.append("-d")

    args += ["--name", spec.name]
    args += device_args(environment)

    limits = spec.limits
    if limits.privileged:
        args.append("--privileged")
    args.append(f"--network={limits.network}")
    args.append(f"--shm-size={limits.shm_size}")
    args.append(f"--ipc={limits.ipc}")

    for key, value in sorted(spec.env):
        args += ["-e", f"{key}={value}"]

    for mount in spec.mounts:
        args += ["-v", mount.as_volume()]

    args.append(spec.image)
    if mode is RunMode.INTERACTIVE:
        args += list(spec.interactive_command)
    else:
        args += list(spec.keepalive_command)
    return args


def build_exec_args(
    engine: EngineInfo,
    container_name: str,
    command: Optional[Sequence[str]] = None,
    tty: bool = True,
) -> List[str]:
    args = [engine.name, "exec", "-it" if tty else "-i", container_name]
    args += list(command) if command else list(DEFAULT_EXEC_COMMAND)
    return args


def build_build_args(
    engine: EngineInfo,
    image: str,
    context: str = ".",
    dockerfile: str = "Dockerfile",
    target: Optional[str] = "runtime",
    no_cache: bool = False,
) -> List[str]:
    args = [engine.name, "build", "-t", image]
    if target:
        args += ["--target", target]
    args += ["-f", dockerfile]
    if no_cache:
        args.append("--no-cache")
    args.append(context)
    return args
