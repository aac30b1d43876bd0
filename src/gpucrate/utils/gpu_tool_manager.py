#!/usr/bin/env python3
"""
Base GPU Tool Manager Architecture

Provides the abstract base class and common infrastructure for GPU
vendor-specific tool managers.

Host state (driver installs, CDI regeneration) can change between
invocations, so managers never cache tool lookups or query results.
"""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class BaseGPUToolManager(ABC):
    """Abstract base class for GPU vendor-specific tool managers.

    Provides common infrastructure for:
    - Tool availability checking
    - Command execution with timeout
    - Consistent logging

    Subclasses implement vendor-specific logic for version and device
    detection.
    """

    @abstractmethod
    def get_version(self) -> Optional[str]:
        """Get the GPU driver/toolkit version.

        Returns:
            Version string or None if unable to detect
        """
        pass

    def find_tool(self, tool: str) -> Optional[str]:
        """Resolve a tool on PATH.

        Args:
            tool: Tool name (e.g., nvidia-smi)

        Returns:
            Absolute path or None when the tool is not installed
        """
        return shutil.which(tool)

    def is_tool_available(self, tool: str) -> bool:
        return self.find_tool(tool) is not None

    def _execute_command(
        self,
        command: List[str],
        timeout: int = 30,
    ) -> Tuple[bool, str, str]:
        """Execute a command and return result.

        Args:
            command: Argument vector
            timeout: Timeout in seconds

        Returns:
            Tuple of (success, stdout, stderr)
        """
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
            return result.returncode == 0, result.stdout.strip(), result.stderr.strip()

        except subprocess.TimeoutExpired:
            return False, "", f"Command timed out after {timeout} seconds"
        except FileNotFoundError:
            return False, "", f"Command not found: {command[0]}"
        except OSError as e:
            return False, "", f"Command execution error: {e}"

    def _log_debug(self, message: str) -> None:
        logger.debug(f"[{self.__class__.__name__}] {message}")

    def _log_info(self, message: str) -> None:
        logger.info(f"[{self.__class__.__name__}] {message}")

    def _log_warning(self, message: str) -> None:
        logger.warning(f"[{self.__class__.__name__}] {message}")

    def _log_error(self, message: str) -> None:
        logger.error(f"[{self.__class__.__name__}] {message}")
