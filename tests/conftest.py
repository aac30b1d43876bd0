"""
Pytest configuration and shared fixtures for gpucrate tests.

Provides an in-memory fake container engine, a scripted shell console,
mock capability probes and isolated settings so that lifecycle behaviour can
be tested without a real container engine or GPU.
"""

from typing import Dict, List
from unittest.mock import MagicMock

import pytest

from gpucrate.core.engine import ContainerState, EngineInfo
from gpucrate.core.errors import ContainerAlreadyExists
from gpucrate.orchestration.lifecycle_manager import LifecycleManager
from gpucrate.utils.capability_probe import GpuDescriptor, GpuExposureMode, RuntimeEnvironment
from gpucrate.utils.config_loader import ConfigLoader


# ============================================================================
# Fakes
# ============================================================================

class FakeEngine:
    """In-memory stand-in for ContainerEngine keyed by container name."""

    def __init__(self, info: EngineInfo):
        self.info = info
        self.containers: Dict[str, ContainerState] = {}
        self.calls: List[tuple] = []
        self.pending_conflicts = 0
        self.start_as = ContainerState.RUNNING

    @property
    def name(self) -> str:
        return self.info.name

    def container_state(self, container_name):
        return self.containers.get(container_name, ContainerState.ABSENT)

    def stop(self, container_name, grace_seconds=10):
        self.calls.append(("stop", container_name))
        if self.containers.get(container_name) is ContainerState.RUNNING:
            self.containers[container_name] = ContainerState.STOPPED

    def remove(self, container_name):
        self.calls.append(("remove", container_name))
        self.containers.pop(container_name, None)

    def create_detached(self, command, container_name, timeout=300):
        self.calls.append(("create", container_name))
        if self.pending_conflicts:
            self.pending_conflicts -= 1
            raise ContainerAlreadyExists(f"Container name {container_name} is already in use")
        if container_name in self.containers:
            raise ContainerAlreadyExists(f"Container name {container_name} is already in use")
        self.containers[container_name] = self.start_as
        return "f00dfeed"

    def count(self, action):
        return sum(1 for call in self.calls if call[0] == action)


class FakeShell:
    """Scripted replacement for core.console.Console.sh."""

    def __init__(self, version="podman version 4.9.3", info_output=""):
        self.version = version
        self.info_output = info_output
        self.calls: List[List[str]] = []

    def sh(self, command, canFail=False, timeout=60, secret=False, prefix="", env=None):
        self.calls.append(list(command))
        if list(command[1:]) == ["--version"]:
            return self.version
        if list(command[1:]) == ["info"]:
            return self.info_output
        return ""


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def podman_info():
    return EngineInfo(name="podman", path="/usr/bin/podman", version="podman version 4.9.3")


@pytest.fixture
def docker_info():
    return EngineInfo(name="docker", path="/usr/bin/docker", version="Docker version 26.1.0, build 9714adc")


@pytest.fixture
def make_environment(podman_info):
    """Factory for RuntimeEnvironment snapshots."""

    def _make(exposure=GpuExposureMode.CDI, engine=None, gpu_name="NVIDIA GeForce RTX 3090"):
        gpu = GpuDescriptor(name=gpu_name, driver_version="550.54.14") if gpu_name else None
        return RuntimeEnvironment(engine=engine or podman_info, gpu=gpu, exposure=exposure)

    return _make


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings isolated under tmp_path, ignoring the caller's environment."""
    monkeypatch.chdir(tmp_path)
    return ConfigLoader.load_settings(
        overrides={
            "dataset_dir": str(tmp_path / "dataset"),
            "experiments_dir": str(tmp_path / "experiments"),
            "x11_socket": str(tmp_path / "x11"),
            "lock_dir": str(tmp_path / "locks"),
            "lock_timeout": 0.5,
        },
        environ={},
    )


@pytest.fixture
def fake_engine(podman_info):
    return FakeEngine(podman_info)


@pytest.fixture
def fake_shell():
    return FakeShell()


@pytest.fixture
def mock_probe(podman_info, make_environment):
    """Capability probe reporting podman with a CDI-exposed GPU."""
    probe = MagicMock()
    probe.detect_engine.return_value = podman_info
    probe.probe.return_value = make_environment(GpuExposureMode.CDI)
    probe.detect_gpu_exposure_mode.return_value = GpuExposureMode.CDI
    return probe


@pytest.fixture
def manager(settings, fake_engine, mock_probe):
    """LifecycleManager wired to the fake engine and a mock console."""
    console = MagicMock()
    console.wait.return_value = 0
    console.attach.return_value = 0
    return LifecycleManager(
        settings,
        console=console,
        probe=mock_probe,
        engine_factory=lambda info, shell: fake_engine,
    )


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (may be slow)"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as fast unit tests"
    )
