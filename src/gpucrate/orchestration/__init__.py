"""
Orchestration layer for gpucrate.

Contains the container lifecycle state machine and the setup validation
pipeline.
"""

from .lifecycle_manager import ContainerStatus, LifecycleManager
from .validation_pipeline import CheckResult, CheckStatus, ValidationPipeline, ValidationReport

__all__ = [
    "ContainerStatus",
    "LifecycleManager",
    "CheckResult",
    "CheckStatus",
    "ValidationPipeline",
    "ValidationReport",
]
