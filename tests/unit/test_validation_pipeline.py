#!/usr/bin/env python3
"""
Unit tests for the repository and host validation checklist.
"""

from unittest.mock import MagicMock

import pytest

from gpucrate.core.errors import EngineCommandError, EngineNotFound
from gpucrate.orchestration.validation_pipeline import CheckStatus, ValidationPipeline
from gpucrate.utils.capability_probe import GpuDescriptor

ARTIFACTS = {
    "docker-compose.yml": "services:\n  slam:\n    image: gs-icp-slam:latest\n",
    "docker-compose.dev.yml": "services:\n  slam-dev:\n    image: gs-icp-slam:dev\n",
    "Dockerfile": "FROM nvidia/cuda:12.1.0-devel-ubuntu22.04 AS runtime\nWORKDIR /app\n",
    ".dockerignore": "dataset\nexperiments\n.git\n",
    ".devcontainer/devcontainer.json": "{}\n",
    ".github/workflows/docker-build-push.yml": "name: build\n",
    ".github/dependabot.yml": "version: 2\n",
    ".gitmodules": (
        '[submodule "submodules/simple-knn"]\n\tpath = submodules/simple-knn\n'
        '[submodule "submodules/fast_gicp"]\n\tpath = submodules/fast_gicp\n'
    ),
    "requirements.txt": "numpy\nopen3d\nplyfile\n",
}


@pytest.fixture
def repo(tmp_path):
    for relative, content in ARTIFACTS.items():
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return tmp_path


@pytest.fixture
def probe(podman_info):
    probe = MagicMock()
    probe.detect_engine.return_value = podman_info
    probe.detect_gpu.return_value = GpuDescriptor("Tesla P100-PCIE-16GB", "535.183.01")
    return probe


@pytest.fixture
def shell():
    shell = MagicMock()
    shell.sh.return_value = "podman-compose version 1.0.6"
    return shell


def _by_name(report):
    return {result.name: result for result in report.results}


def test_all_checks_pass(repo, probe, shell):
    report = ValidationPipeline(str(repo), probe=probe, console=shell).run()

    assert report.passed
    assert report.failures == []
    assert len(report.results) == 12
    assert all(r.status is CheckStatus.PASS for r in report.results)


def test_checks_run_in_order(repo, probe, shell):
    report = ValidationPipeline(str(repo), probe=probe, console=shell).run()

    names = [r.name for r in report.results]
    assert names[0] == "Container engine"
    assert names[-1] == "requirements.txt"


def test_missing_requirements_fails(repo, probe, shell):
    (repo / "requirements.txt").unlink()

    report = ValidationPipeline(str(repo), probe=probe, console=shell).run()

    assert not report.passed
    assert [r.name for r in report.failures] == ["requirements.txt"]
    assert report.failures[0].message == "requirements.txt not found"


def test_missing_engine_does_not_stop_later_checks(repo, probe, shell):
    probe.detect_engine.side_effect = EngineNotFound("podman or docker is not installed.")

    report = ValidationPipeline(str(repo), probe=probe, console=shell).run()
    results = _by_name(report)

    assert results["Container engine"].status is CheckStatus.FAIL
    assert results["Compose support"].status is CheckStatus.FAIL
    assert results["Dockerfile"].status is CheckStatus.PASS
    assert results["requirements.txt"].status is CheckStatus.PASS
    assert len(report.results) == 12


def test_invalid_compose_file(repo, probe, shell):
    def sh(command, **kwargs):
        if "config" in command and str(repo / "docker-compose.dev.yml") in command:
            raise EngineCommandError("failed", output="yaml: line 2: mapping values are not allowed")
        return "ok"

    shell.sh.side_effect = sh

    results = _by_name(ValidationPipeline(str(repo), probe=probe, console=shell).run())

    assert results["docker-compose.yml"].status is CheckStatus.PASS
    assert results["docker-compose.dev.yml"].status is CheckStatus.FAIL
    assert results["docker-compose.dev.yml"].message == "docker-compose.dev.yml has errors"


def test_dockerfile_structure(repo, probe, shell):
    (repo / "Dockerfile").write_text("RUN echo hi\n")

    results = _by_name(ValidationPipeline(str(repo), probe=probe, console=shell).run())

    assert results["Dockerfile"].status is CheckStatus.FAIL
    assert "missing FROM or WORKDIR" in results["Dockerfile"].message


def test_optional_checks_only_warn(repo, probe, shell):
    (repo / ".dockerignore").unlink()
    (repo / ".gitmodules").unlink()
    probe.detect_gpu.return_value = None

    report = ValidationPipeline(str(repo), probe=probe, console=shell).run()
    results = _by_name(report)

    assert report.passed
    assert results[".dockerignore"].status is CheckStatus.WARN
    assert results["Submodules"].status is CheckStatus.WARN
    assert results["NVIDIA GPU"].status is CheckStatus.WARN
    assert len(report.warnings) == 3


def test_gpu_architecture_note(repo, probe, shell):
    results = _by_name(ValidationPipeline(str(repo), probe=probe, console=shell).run())

    assert "Tesla P100-PCIE-16GB" in results["NVIDIA GPU"].message
    assert "sm60" in results["NVIDIA GPU"].message


def test_counts_are_reported(repo, probe, shell):
    results = _by_name(ValidationPipeline(str(repo), probe=probe, console=shell).run())

    assert results["Submodules"].message == "Found 2 submodules"
    assert results["requirements.txt"].message == "requirements.txt exists (3 packages)"
    assert results[".dockerignore"].message == ".dockerignore exists (3 lines)"


def test_missing_artifact_names_path(repo, probe, shell):
    (repo / ".github" / "dependabot.yml").unlink()

    report = ValidationPipeline(str(repo), probe=probe, console=shell).run()

    assert report.failures[0].name == "Dependabot configuration"
    assert ".github/dependabot.yml" in report.failures[0].message


def test_unexpected_exception_is_recorded(repo, probe, shell):
    probe.detect_gpu.side_effect = RuntimeError("driver crashed")

    results = _by_name(ValidationPipeline(str(repo), probe=probe, console=shell).run())

    assert results["NVIDIA GPU"].status is CheckStatus.WARN
    assert "driver crashed" in results["NVIDIA GPU"].message
