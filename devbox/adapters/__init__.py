"""Adapters — bindings to package managers and the shell.

Public re-exports for convenient access.
"""

from devbox.adapters.base import InstallOptions, PackageBackend
from devbox.adapters.mock import MockBackend
from devbox.adapters.registry import BackendRegistry, default_registry

__all__ = [
    "BackendRegistry",
    "InstallOptions",
    "MockBackend",
    "PackageBackend",
    "default_registry",
]
