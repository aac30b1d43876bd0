#!/usr/bin/env python3
"""
Unified error handling for gpucrate.

Provides the error taxonomy raised by the capability probe, the lifecycle
manager and the validation pipeline, plus a Rich-based handler that renders
errors as panels with suggestions.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text


class ErrorCategory(Enum):
    """Categories used to group and display errors."""

    PREREQUISITE = "prerequisite"
    GPU = "gpu"
    CONTAINER = "container"
    ENGINE = "engine"
    LOCK = "lock"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"


@dataclass
class ErrorContext:
    """Where an error happened."""

    operation: str
    phase: Optional[str] = None
    component: Optional[str] = None
    container_name: Optional[str] = None
    engine: Optional[str] = None
    file_path: Optional[str] = None
    additional_info: Optional[Dict[str, Any]] = None


class GpuCrateError(Exception):
    """Base class for all gpucrate errors.

    Attributes:
        message: Human readable message.
        category: The error category.
        context: Optional error context.
        recoverable: Whether the caller may recover and continue.
        suggestions: Hints shown to the user.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        context: Optional[ErrorContext] = None,
        recoverable: bool = False,
        suggestions: Optional[List[str]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.cause = cause


class EngineNotFound(GpuCrateError):
    """No container engine binary is reachable."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault(
            "suggestions",
            ["Install Podman (https://podman.io) or Docker", "Check that the engine binary is on PATH"],
        )
        super().__init__(message, ErrorCategory.PREREQUISITE, recoverable=False, **kwargs)


class ToolNotFound(GpuCrateError):
    """A required host tool (e.g. nvidia-ctk) is missing."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.PREREQUISITE, recoverable=False, **kwargs)


class GpuUnavailable(GpuCrateError):
    """No usable GPU. Narrows device-argument selection, never fatal."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.GPU, recoverable=True, **kwargs)


class CdiSetupError(GpuCrateError):
    """CDI descriptor was generated but the engine does not advertise the GPU namespace."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.GPU, recoverable=False, **kwargs)


class ContainerAlreadyExists(GpuCrateError):
    """The engine refused to create a container because the name is taken."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.CONTAINER, recoverable=True, **kwargs)


class ContainerNotRunning(GpuCrateError):
    """An operation needs a running container and there is none."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("suggestions", ["Start the container first: gpucrate start"])
        super().__init__(message, ErrorCategory.CONTAINER, recoverable=False, **kwargs)


class ContainerLockTimeout(GpuCrateError):
    """Another invocation holds the lock for this container name."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.LOCK, recoverable=True, **kwargs)


class EngineCommandError(GpuCrateError):
    """An engine subprocess exited with a non-zero status."""

    def __init__(self, message: str, returncode: int = 1, output: str = "", **kwargs):
        super().__init__(message, ErrorCategory.ENGINE, recoverable=False, **kwargs)
        self.returncode = returncode
        self.output = output


class ValidationCheckFailed(GpuCrateError):
    """A single validation check failed. Collected, never aborting."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.VALIDATION, recoverable=True, **kwargs)


class ConfigurationError(GpuCrateError):
    """Settings could not be loaded or are invalid."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.CONFIGURATION, recoverable=True, **kwargs)


class ErrorHandler:
    """Renders errors on a Rich console and logs them."""

    CATEGORY_STYLES = {
        ErrorCategory.PREREQUISITE: ("📦", "Prerequisite Error", "red"),
        ErrorCategory.GPU: ("🎮", "GPU Error", "yellow"),
        ErrorCategory.CONTAINER: ("🐳", "Container Error", "red"),
        ErrorCategory.ENGINE: ("⚙️", "Engine Error", "red"),
        ErrorCategory.LOCK: ("🔒", "Lock Error", "yellow"),
        ErrorCategory.VALIDATION: ("⚠️", "Validation Error", "yellow"),
        ErrorCategory.CONFIGURATION: ("🛠️", "Configuration Error", "yellow"),
    }

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)

    def handle_error(
        self,
        error: BaseException,
        context: Optional[ErrorContext] = None,
        show_traceback: bool = False,
    ) -> None:
        """Display an error and log it.

        Args:
            error: The exception to handle.
            context: Context to use when the error does not carry one.
            show_traceback: Print the traceback (only honoured in verbose mode).
        """
        if isinstance(error, GpuCrateError):
            emoji, title, style = self.CATEGORY_STYLES.get(
                error.category, ("❌", "Error", "red")
            )
            context = error.context or context
            body = Text(error.message, style=f"bold {style}")
            if context is not None:
                body.append(f"\n\nOperation: {context.operation}", style="dim")
                if context.container_name:
                    body.append(f"\nContainer: {context.container_name}", style="dim")
                if context.engine:
                    body.append(f"\nEngine: {context.engine}", style="dim")
            if error.suggestions:
                body.append("\n\n💡 Suggestions:", style="bold cyan")
                for suggestion in error.suggestions:
                    body.append(f"\n  • {suggestion}")
            self.logger.error("%s: %s", title, error.message)
        else:
            emoji, title, style = "❌", type(error).__name__, "red"
            body = Text(str(error), style=f"bold {style}")
            if context is not None:
                body.append(f"\n\nOperation: {context.operation}", style="dim")
            self.logger.error("%s: %s", title, error)

        self.console.print(Panel(body, title=f"{emoji} {title}", border_style=style))

        if self.verbose and show_traceback:
            self.console.print_exception()


_error_handler: Optional[ErrorHandler] = None


def set_error_handler(handler: Optional[ErrorHandler]) -> None:
    global _error_handler
    _error_handler = handler


def get_error_handler() -> Optional[ErrorHandler]:
    return _error_handler


def handle_error(
    error: BaseException,
    context: Optional[ErrorContext] = None,
    show_traceback: bool = False,
) -> None:
    """Route an error to the global handler, or log it if none is set."""
    if _error_handler is None:
        logging.error("Unhandled error: %s", error)
        return
    _error_handler.handle_error(error, context=context, show_traceback=show_traceback)


def create_error_context(operation: str, **kwargs) -> ErrorContext:
    return ErrorContext(operation=operation, **kwargs)
