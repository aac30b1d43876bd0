"""gpucrate - lifecycle orchestration for a GPU-accelerated workload container."""

__version__ = "1.0.0"
