#!/usr/bin/env python3
"""Host and engine capability detection.

Reports which container engine is available, whether an NVIDIA GPU is
present, and which GPU-exposure mechanism the engine supports. Results are
computed fresh on every call: a driver install or CDI regeneration between
invocations must be observed.
"""

import logging
import shutil
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from gpucrate.core.console import Console
from gpucrate.core.engine import ContainerEngine, EngineInfo
from gpucrate.core.errors import (
    EngineCommandError,
    EngineNotFound,
    GpuUnavailable,
    create_error_context,
)
from gpucrate.utils.nvidia_tool_manager import NvidiaToolManager

logger = logging.getLogger(__name__)

# Engines tried, in order, when the configured engine is "auto".
ENGINE_PREFERENCE: Tuple[str, ...] = ("podman", "docker")

# Device namespace an engine lists in `info` once a CDI descriptor is loaded.
GPU_CDI_NAMESPACE = "nvidia.com/gpu"


class GpuExposureMode(Enum):
    """How GPUs are handed to the container."""
    CDI = "cdi"
    LEGACY_LABEL = "legacy-label"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class GpuDescriptor:
    name: str
    driver_version: Optional[str] = None


@dataclass(frozen=True)
class RuntimeEnvironment:
    """Snapshot of host capabilities for a single invocation."""
    engine: EngineInfo
    gpu: Optional[GpuDescriptor]
    exposure: GpuExposureMode

    @property
    def gpu_name(self) -> str:
        return self.gpu.name if self.gpu is not None else "unknown"


class CapabilityProbe:
    """Detects the container engine, GPU and GPU-exposure mode.

    Attributes:
        preferred_engine (str): auto, podman or docker.
        console (Console): Used for engine queries.
        nvidia (NvidiaToolManager): Used for GPU queries.
    """

    def __init__(
        self,
        preferred_engine: str = "auto",
        console: Optional[Console] = None,
        nvidia: Optional[NvidiaToolManager] = None,
    ) -> None:
        self.preferred_engine = preferred_engine
        self.console = console if console is not None else Console()
        self.nvidia = nvidia if nvidia is not None else NvidiaToolManager()

    def detect_engine(self) -> EngineInfo:
        """Find a usable engine binary.

        Raises:
            EngineNotFound: If no candidate engine is installed.
        """
        if self.preferred_engine == "auto":
            candidates = ENGINE_PREFERENCE
        else:
            candidates = (self.preferred_engine,)

        for name in candidates:
            path = shutil.which(name)
            if path is None:
                logger.debug("Engine %s not found on PATH", name)
                continue
            try:
                version = self.console.sh([name, "--version"], timeout=30)
            except EngineCommandError as e:
                logger.warning("%s is installed but not usable: %s", name, e.message)
                continue
            logger.info("Container engine: %s", version)
            return EngineInfo(name=name, path=path, version=version)

        raise EngineNotFound(
            f"{' or '.join(candidates)} is not installed. Please install a container engine first.",
            context=create_error_context("detect_engine", engine=self.preferred_engine),
        )

    def detect_gpu(self) -> Optional[GpuDescriptor]:
        """Return the first NVIDIA GPU, or None when absent. Never fatal."""
        try:
            name, driver = self.nvidia.query_gpu()
        except GpuUnavailable as e:
            logger.warning(e.message)
            return None
        logger.info("NVIDIA GPU detected: %s", name)
        return GpuDescriptor(name=name, driver_version=driver)

    def engine_advertises_gpu(self, engine: EngineInfo) -> bool:
        return GPU_CDI_NAMESPACE in ContainerEngine(engine, self.console).system_info()

    def detect_gpu_exposure_mode(self, engine: Optional[EngineInfo] = None) -> GpuExposureMode:
        """Pick the GPU-exposure mode for the given (or detected) engine."""
        engine = engine if engine is not None else self.detect_engine()
        return self._select_mode(engine, self.detect_gpu())

    def _select_mode(self, engine: EngineInfo, gpu: Optional[GpuDescriptor]) -> GpuExposureMode:
        # A CDI descriptor left over from an unloaded driver must not be used.
        if gpu is None:
            logger.warning("No GPU exposure available; the workload will run CPU-only")
            return GpuExposureMode.UNSUPPORTED
        if self.engine_advertises_gpu(engine):
            logger.info("Using CDI for GPU access")
            return GpuExposureMode.CDI
        logger.warning(
            "CDI not configured for %s. Falling back to legacy GPU support "
            "(disables SELinux labelling); run 'gpucrate setup-cdi' to fix.",
            engine.name,
        )
        return GpuExposureMode.LEGACY_LABEL

    def probe(self) -> RuntimeEnvironment:
        engine = self.detect_engine()
        gpu = self.detect_gpu()
        return RuntimeEnvironment(engine=engine, gpu=gpu, exposure=self._select_mode(engine, gpu))
