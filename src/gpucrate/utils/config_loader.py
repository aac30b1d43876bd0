#!/usr/bin/env python3
"""
Configuration loader with multi-layer merging.

Layers (low to high priority):
1. Built-in defaults (DEFAULT_SETTINGS)
2. User file (--config, $GPUCRATE_CONFIG, or ./gpucrate.yaml)
3. Environment variables (DATASET_DIR, EXPERIMENTS_DIR, DISPLAY, GPUCRATE_*)
4. CLI overrides
"""

import json
import logging
import os
from copy import deepcopy
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from gpucrate.core.errors import ConfigurationError, create_error_context

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "gpucrate.yaml"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "engine": "auto",
    "image": "gs-icp-slam:latest",
    "container_name": "gs-icp-slam",
    "dataset_dir": "dataset",
    "experiments_dir": "experiments",
    "dataset_mount": "/app/dataset",
    "experiments_mount": "/app/experiments",
    "x11_socket": "/tmp/.X11-unix",
    "display": ":0",
    "shm_size": "12gb",
    "network": "host",
    "ipc": "host",
    "privileged": True,
    "interactive_command": ["/bin/bash"],
    "keepalive_command": ["tail", "-f", "/dev/null"],
    "build_context": ".",
    "dockerfile": "Dockerfile",
    "build_target": "runtime",
    "cdi_output": "/etc/cdi/nvidia.yaml",
    "lock_dir": os.path.join(Path.home(), ".gpucrate", "locks"),
    "lock_timeout": 30.0,
    "command_timeout": 300,
}

# Environment variable -> settings key
ENV_OVERRIDES: Dict[str, str] = {
    "DATASET_DIR": "dataset_dir",
    "EXPERIMENTS_DIR": "experiments_dir",
    "DISPLAY": "display",
    "GPUCRATE_ENGINE": "engine",
    "GPUCRATE_IMAGE": "image",
    "GPUCRATE_CONTAINER_NAME": "container_name",
}

VALID_ENGINES = ("auto", "podman", "docker")


@dataclass(frozen=True)
class Settings:
    """Resolved deployment settings, threaded explicitly through every operation."""
    engine: str
    image: str
    container_name: str
    dataset_dir: str
    experiments_dir: str
    dataset_mount: str
    experiments_mount: str
    x11_socket: str
    display: str
    shm_size: str
    network: str
    ipc: str
    privileged: bool
    interactive_command: List[str]
    keepalive_command: List[str]
    build_context: str
    dockerfile: str
    build_target: str
    cdi_output: str
    lock_dir: str
    lock_timeout: float
    command_timeout: int


class ConfigLoader:
    """Builds Settings from defaults, a settings file, the environment and CLI overrides."""

    @classmethod
    def deep_merge(cls, base: Dict, override: Dict) -> Dict:
        """
        Deep merge two dictionaries. Override wins conflicts.
        Nested dicts are merged, lists/primitives are replaced.
        """
        result = deepcopy(base)
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls.deep_merge(result[key], value)
            else:
                result[key] = deepcopy(value)
        return result

    @classmethod
    def load_file(cls, path: str) -> Dict[str, Any]:
        """Load a YAML or JSON settings file.

        Raises:
            ConfigurationError: If the file cannot be read or is not a mapping.
        """
        context = create_error_context("load_config", file_path=path)
        try:
            with open(path, "r") as f:
                if path.endswith(".json"):
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Could not load settings file {path}: {e}", context=context, cause=e
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Settings file {path} must contain a mapping", context=context
            )
        return data

    @classmethod
    def from_environment(cls, environ: Mapping[str, str]) -> Dict[str, Any]:
        return {
            key: environ[var]
            for var, key in ENV_OVERRIDES.items()
            if environ.get(var)
        }

    @classmethod
    def resolve_config_file(cls, config_file: Optional[str], environ: Mapping[str, str]) -> Optional[str]:
        if config_file:
            return config_file
        if environ.get("GPUCRATE_CONFIG"):
            return environ["GPUCRATE_CONFIG"]
        if os.path.exists(DEFAULT_CONFIG_FILE):
            return DEFAULT_CONFIG_FILE
        return None

    @classmethod
    def load_config(
        cls,
        config_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        """Merge all layers into a plain dictionary."""
        environ = os.environ if environ is None else environ
        config = deepcopy(DEFAULT_SETTINGS)

        path = cls.resolve_config_file(config_file, environ)
        if path is not None:
            LOGGER.debug("Loading settings file %s", path)
            config = cls.deep_merge(config, cls.load_file(path))

        config = cls.deep_merge(config, cls.from_environment(environ))
        if overrides:
            config = cls.deep_merge(
                config, {k: v for k, v in overrides.items() if v is not None}
            )
        return config

    @classmethod
    def load_settings(
        cls,
        config_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Settings:
        """Merge all layers and validate them into a Settings object.

        Raises:
            ConfigurationError: On unknown keys or invalid values.
        """
        config = cls.load_config(config_file, overrides, environ)
        context = create_error_context("load_config", file_path=config_file)

        known = {f.name for f in fields(Settings)}
        unknown = sorted(set(config) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown settings: {', '.join(unknown)}",
                context=context,
                suggestions=[f"Valid settings: {', '.join(sorted(known))}"],
            )

        if config["engine"] not in VALID_ENGINES:
            raise ConfigurationError(
                f"Invalid engine: {config['engine']}",
                context=context,
                suggestions=[f"Supported values: {', '.join(VALID_ENGINES)}"],
            )

        for key in ("interactive_command", "keepalive_command"):
            if isinstance(config[key], str):
                config[key] = config[key].split()
            config[key] = [str(part) for part in config[key]]

        for key in ("dataset_dir", "experiments_dir", "build_context", "lock_dir"):
            config[key] = os.path.abspath(os.path.expanduser(str(config[key])))

        try:
            config["lock_timeout"] = float(config["lock_timeout"])
            config["command_timeout"] = int(config["command_timeout"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid timeout value: {e}", context=context, cause=e) from e

        if not isinstance(config["privileged"], bool):
            raise ConfigurationError(
                f"Invalid privileged value: {config['privileged']!r}",
                context=context,
                suggestions=["Use a YAML/JSON boolean: true or false"],
            )

        return Settings(**config)
