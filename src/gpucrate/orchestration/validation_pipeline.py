#!/usr/bin/env python3
"""Repository and host setup validation.

Runs an ordered, read-only checklist over the repository artifacts and the
host environment. Checks are independent: a failing check is recorded and
the next one still runs. The aggregate fails only when a required check
fails; optional checks downgrade to warnings.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from gpucrate.core.console import Console
from gpucrate.core.engine import ContainerEngine, EngineInfo
from gpucrate.core.errors import GpuCrateError, ValidationCheckFailed
from gpucrate.utils.capability_probe import CapabilityProbe

logger = logging.getLogger(__name__)

COMPOSE_FILES = ("docker-compose.yml", "docker-compose.dev.yml")
IGNORE_FILE = ".dockerignore"
DEVCONTAINER_FILE = ".devcontainer/devcontainer.json"
CI_WORKFLOW_FILE = ".github/workflows/docker-build-push.yml"
DEPENDABOT_FILE = ".github/dependabot.yml"
SUBMODULES_FILE = ".gitmodules"
REQUIREMENTS_FILE = "requirements.txt"
DOCKERFILE = "Dockerfile"

# GPU families the image is explicitly compiled for.
KNOWN_ARCH_NOTES = {"P100": "sm60 support enabled in Dockerfile"}


class CheckStatus(Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass(frozen=True)
class CheckResult:
    name: str
    status: CheckStatus
    message: str
    optional: bool = False


@dataclass
class ValidationReport:
    """Ordered results of one pipeline run."""
    results: List[CheckResult] = field(default_factory=list)

    @property
    def failures(self) -> List[CheckResult]:
        return [r for r in self.results if r.status is CheckStatus.FAIL and not r.optional]

    @property
    def warnings(self) -> List[CheckResult]:
        return [r for r in self.results if r.status is CheckStatus.WARN]

    @property
    def status(self) -> CheckStatus:
        return CheckStatus.FAIL if self.failures else CheckStatus.PASS

    @property
    def passed(self) -> bool:
        return self.status is CheckStatus.PASS


def _line_count(path: Path) -> int:
    with open(path, "r", errors="replace") as f:
        return sum(1 for _ in f)


class ValidationPipeline:
    """Validates the repository and host for running the workload container.

    Args:
        root: Repository root containing the artifacts.
        probe: Capability probe used for engine and GPU checks.
        console: Console used for engine compose checks.
    """

    def __init__(
        self,
        root: str = ".",
        probe: Optional[CapabilityProbe] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.root = Path(root)
        self.console = console if console is not None else Console()
        self.probe = probe if probe is not None else CapabilityProbe(console=self.console)
        self._engine_info: Optional[EngineInfo] = None

    def checks(self) -> List[Tuple[str, bool, Callable[[], CheckResult]]]:
        """Ordered (name, optional, check) triples."""
        checks = [
            ("Container engine", False, self.check_engine),
            ("Compose support", False, self.check_compose),
        ]
        for compose_file in COMPOSE_FILES:
            checks.append(
                (compose_file, False, lambda f=compose_file: self.check_compose_file(f))
            )
        checks += [
            ("Dockerfile", False, self.check_dockerfile),
            (IGNORE_FILE, True, self.check_ignore_file),
            ("DevContainer configuration", False, lambda: self.check_artifact(DEVCONTAINER_FILE, "DevContainer configuration")),
            ("GitHub Actions workflow", False, lambda: self.check_artifact(CI_WORKFLOW_FILE, "GitHub Actions workflow")),
            ("Dependabot configuration", False, lambda: self.check_artifact(DEPENDABOT_FILE, "Dependabot configuration")),
            ("NVIDIA GPU", True, self.check_gpu),
            ("Submodules", True, self.check_submodules),
            (REQUIREMENTS_FILE, False, self.check_requirements),
        ]
        return checks

    def run(self) -> ValidationReport:
        """Run every check in order and collect the results."""
        report = ValidationReport()
        for name, optional, check in self.checks():
            try:
                result = check()
            except GpuCrateError as e:
                status = CheckStatus.WARN if optional else CheckStatus.FAIL
                result = CheckResult(name, status, e.message, optional)
            except Exception as e:
                logger.debug("Check %s raised", name, exc_info=True)
                status = CheckStatus.WARN if optional else CheckStatus.FAIL
                result = CheckResult(name, status, f"{type(e).__name__}: {e}", optional)
            logger.debug("%s: %s (%s)", result.name, result.status.value, result.message)
            report.results.append(result)
        return report

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _engine(self) -> ContainerEngine:
        if self._engine_info is None:
            self._engine_info = self.probe.detect_engine()
        return ContainerEngine(self._engine_info, self.console)

    def check_engine(self) -> CheckResult:
        engine = self._engine()
        return CheckResult("Container engine", CheckStatus.PASS, f"{engine.name} is installed: {engine.info.version}")

    def check_compose(self) -> CheckResult:
        version = self._engine().compose_version()
        return CheckResult("Compose support", CheckStatus.PASS, f"Compose is installed: {version}")

    def check_compose_file(self, compose_file: str) -> CheckResult:
        path = self.root / compose_file
        if not path.is_file():
            raise ValidationCheckFailed(f"{compose_file} not found")
        try:
            self._engine().compose_config(str(path))
        except GpuCrateError as e:
            raise ValidationCheckFailed(f"{compose_file} has errors", cause=e) from e
        return CheckResult(compose_file, CheckStatus.PASS, f"{compose_file} is valid")

    def check_dockerfile(self) -> CheckResult:
        path = self.root / DOCKERFILE
        if not path.is_file():
            raise ValidationCheckFailed("Dockerfile not found")
        text = path.read_text(errors="replace")
        if "FROM" in text and "WORKDIR" in text:
            return CheckResult("Dockerfile", CheckStatus.PASS, "Dockerfile has valid basic structure")
        raise ValidationCheckFailed("Dockerfile may have issues (missing FROM or WORKDIR)")

    def check_ignore_file(self) -> CheckResult:
        path = self.root / IGNORE_FILE
        if not path.is_file():
            return CheckResult(IGNORE_FILE, CheckStatus.WARN, f"{IGNORE_FILE} not found", optional=True)
        return CheckResult(
            IGNORE_FILE, CheckStatus.PASS, f"{IGNORE_FILE} exists ({_line_count(path)} lines)", optional=True
        )

    def check_artifact(self, relative_path: str, label: str) -> CheckResult:
        if not (self.root / relative_path).is_file():
            raise ValidationCheckFailed(f"{label} not found ({relative_path})")
        return CheckResult(label, CheckStatus.PASS, f"{label} exists")

    def check_gpu(self) -> CheckResult:
        gpu = self.probe.detect_gpu()
        if gpu is None:
            return CheckResult(
                "NVIDIA GPU", CheckStatus.WARN, "NVIDIA GPU not detected (optional for validation)", optional=True
            )
        message = f"NVIDIA GPU detected: {gpu.name}"
        for family, note in KNOWN_ARCH_NOTES.items():
            if family.lower() in gpu.name.lower():
                message += f" (NVIDIA {family} detected - {note})"
        return CheckResult("NVIDIA GPU", CheckStatus.PASS, message, optional=True)

    def check_submodules(self) -> CheckResult:
        path = self.root / SUBMODULES_FILE
        if not path.is_file():
            return CheckResult("Submodules", CheckStatus.WARN, "No git submodules configured", optional=True)
        with open(path, "r", errors="replace") as f:
            count = sum(1 for line in f if line.strip().startswith("path = "))
        return CheckResult("Submodules", CheckStatus.PASS, f"Found {count} submodules", optional=True)

    def check_requirements(self) -> CheckResult:
        path = self.root / REQUIREMENTS_FILE
        if not path.is_file():
            raise ValidationCheckFailed(f"{REQUIREMENTS_FILE} not found")
        return CheckResult(
            REQUIREMENTS_FILE, CheckStatus.PASS, f"{REQUIREMENTS_FILE} exists ({_line_count(path)} packages)"
        )
