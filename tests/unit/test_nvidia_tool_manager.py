#!/usr/bin/env python3
"""
Unit tests for the NVIDIA tool manager.
"""

from unittest.mock import patch

import pytest

from gpucrate.core.errors import CdiSetupError, GpuUnavailable, ToolNotFound
from gpucrate.utils.gpu_tool_manager import BaseGPUToolManager
from gpucrate.utils.nvidia_tool_manager import NvidiaToolManager


@pytest.fixture
def manager():
    return NvidiaToolManager()


def _on_path(*tools):
    return lambda tool: f"/usr/bin/{tool}" if tool in tools else None


class TestQueryGpu:

    def test_parses_first_gpu(self, manager):
        output = "Tesla P100-PCIE-16GB, 535.183.01\nTesla P100-PCIE-16GB, 535.183.01"
        with patch.object(manager, "find_tool", side_effect=_on_path("nvidia-smi")), \
             patch.object(manager, "_execute_command", return_value=(True, output, "")) as execute:
            assert manager.query_gpu() == ("Tesla P100-PCIE-16GB", "535.183.01")

        assert execute.call_args[0][0][0] == "/usr/bin/nvidia-smi"

    def test_missing_nvidia_smi(self, manager):
        with patch.object(manager, "find_tool", return_value=None):
            with pytest.raises(GpuUnavailable, match="nvidia-smi not found"):
                manager.query_gpu()

    def test_driver_not_loaded(self, manager):
        failure = (False, "", "NVIDIA-SMI has failed because it couldn't communicate with the NVIDIA driver")
        with patch.object(manager, "find_tool", side_effect=_on_path("nvidia-smi")), \
             patch.object(manager, "_execute_command", return_value=failure):
            with pytest.raises(GpuUnavailable, match="NVIDIA driver not loaded properly"):
                manager.query_gpu()

    def test_no_gpus_listed(self, manager):
        with patch.object(manager, "find_tool", side_effect=_on_path("nvidia-smi")), \
             patch.object(manager, "_execute_command", return_value=(True, "", "")):
            with pytest.raises(GpuUnavailable):
                manager.query_gpu()

    def test_get_version(self, manager):
        with patch.object(manager, "query_gpu", return_value=("RTX 3090", "550.54.14")):
            assert manager.get_version() == "550.54.14"
        with patch.object(manager, "query_gpu", side_effect=GpuUnavailable("absent")):
            assert manager.get_version() is None


class TestGenerateCdiSpec:

    def test_missing_toolkit(self, manager):
        with patch.object(manager, "find_tool", return_value=None):
            with pytest.raises(ToolNotFound, match="nvidia-container-toolkit"):
                manager.generate_cdi_spec()

    def test_runs_through_sudo_for_non_root(self, manager):
        with patch.object(manager, "find_tool", side_effect=_on_path("nvidia-ctk")), \
             patch.object(manager, "_execute_command", return_value=(True, "", "")) as execute, \
             patch("gpucrate.utils.nvidia_tool_manager.os.geteuid", return_value=1000):
            manager.generate_cdi_spec("/etc/cdi/nvidia.yaml")

        assert execute.call_args[0][0] == [
            "sudo", "/usr/bin/nvidia-ctk", "cdi", "generate", "--output=/etc/cdi/nvidia.yaml"
        ]

    def test_runs_directly_as_root(self, manager):
        with patch.object(manager, "find_tool", side_effect=_on_path("nvidia-ctk")), \
             patch.object(manager, "_execute_command", return_value=(True, "", "")) as execute, \
             patch("gpucrate.utils.nvidia_tool_manager.os.geteuid", return_value=0):
            manager.generate_cdi_spec("/tmp/nvidia.yaml")

        assert execute.call_args[0][0][0] == "/usr/bin/nvidia-ctk"

    def test_generation_failure(self, manager):
        with patch.object(manager, "find_tool", side_effect=_on_path("nvidia-ctk")), \
             patch.object(manager, "_execute_command", return_value=(False, "", "permission denied")), \
             patch("gpucrate.utils.nvidia_tool_manager.os.geteuid", return_value=0):
            with pytest.raises(CdiSetupError, match="permission denied"):
                manager.generate_cdi_spec()


class TestBaseToolManager:

    def test_execute_command(self, manager):
        assert manager._execute_command(["echo", "ok"]) == (True, "ok", "")

    def test_execute_missing_command(self, manager):
        success, _, stderr = manager._execute_command(["gpucrate-no-such-tool"])

        assert success is False
        assert "Command not found" in stderr

    def test_base_is_abstract(self):
        with pytest.raises(TypeError):
            BaseGPUToolManager()
