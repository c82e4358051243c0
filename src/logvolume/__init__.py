"""Kubernetes FlexVolume driver for per-workload log directories."""

from importlib.metadata import PackageNotFoundError, version

from .driver import FlexVolumeDriver

__all__ = ["FlexVolumeDriver", "__version__"]


__version__: str
"""The application version string (PEP 440 / SemVer compatible)."""

try:
    __version__ = version(__name__)
except PackageNotFoundError:
    # package is not installed
    __version__ = "0.0.0"
