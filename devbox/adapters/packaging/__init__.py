"""Distribution package backends."""

from devbox.adapters.packaging.apt import AptBackend
from devbox.adapters.packaging.zypper import ZypperBackend

__all__ = ["AptBackend", "ZypperBackend"]
