#!/usr/bin/env python3
"""
NVIDIA Tool Manager

Wraps the NVIDIA host tools gpucrate needs:
- nvidia-smi for GPU presence, product name and driver version
- nvidia-ctk for generating the CDI (Container Device Interface) descriptor
"""

import os
from typing import List, Optional, Tuple

from gpucrate.core.errors import CdiSetupError, GpuUnavailable, ToolNotFound
from gpucrate.utils.gpu_tool_manager import BaseGPUToolManager

DEFAULT_CDI_OUTPUT = "/etc/cdi/nvidia.yaml"


class NvidiaToolManager(BaseGPUToolManager):
    """NVIDIA tool manager for GPU discovery and CDI generation."""

    NVIDIA_SMI = "nvidia-smi"
    NVIDIA_CTK = "nvidia-ctk"

    def get_version(self) -> Optional[str]:
        try:
            return self.query_gpu()[1]
        except GpuUnavailable:
            return None

    def query_gpu(self) -> Tuple[str, Optional[str]]:
        """Return the name and driver version of the first GPU.

        Raises:
            GpuUnavailable: If nvidia-smi is missing, fails, or lists no GPU.
        """
        smi = self.find_tool(self.NVIDIA_SMI)
        if smi is None:
            raise GpuUnavailable("nvidia-smi not found. GPU support may not work.")

        success, stdout, stderr = self._execute_command(
            [smi, "--query-gpu=name,driver_version", "--format=csv,noheader"]
        )
        if not success:
            raise GpuUnavailable(f"NVIDIA driver not loaded properly: {stderr or stdout}")

        lines = [line for line in stdout.splitlines() if line.strip()]
        if not lines:
            raise GpuUnavailable("nvidia-smi reported no GPUs")

        fields = [field.strip() for field in lines[0].split(",")]
        name = fields[0]
        driver = fields[1] if len(fields) > 1 and fields[1] else None
        self._log_debug(f"GPU: {name} (driver {driver})")
        return name, driver

    def generate_cdi_spec(self, output: str = DEFAULT_CDI_OUTPUT, timeout: int = 120) -> None:
        """Regenerate the CDI descriptor for all NVIDIA devices.

        Runs through sudo when the current user is not root.

        Raises:
            ToolNotFound: If nvidia-ctk is not installed.
            CdiSetupError: If generation fails.
        """
        ctk = self.find_tool(self.NVIDIA_CTK)
        if ctk is None:
            raise ToolNotFound(
                "nvidia-ctk not found. Please install nvidia-container-toolkit.",
                suggestions=["https://docs.nvidia.com/datacenter/cloud-native/container-toolkit/"],
            )

        command: List[str] = [ctk, "cdi", "generate", f"--output={output}"]
        if os.geteuid() != 0:
            command = ["sudo", *command]

        self._log_info(f"Generating CDI descriptor at {output}")
        success, stdout, stderr = self._execute_command(command, timeout=timeout)
        if not success:
            raise CdiSetupError(f"CDI generation failed: {stderr or stdout}")
