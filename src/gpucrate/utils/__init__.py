"""
gpucrate Utilities

Utility modules for gpucrate including layered settings and host capability detection.
"""

from .capability_probe import CapabilityProbe, GpuDescriptor, GpuExposureMode, RuntimeEnvironment
from .config_loader import ConfigLoader, Settings

__all__ = [
    "CapabilityProbe",
    "GpuDescriptor",
    "GpuExposureMode",
    "RuntimeEnvironment",
    "ConfigLoader",
    "Settings",
]
