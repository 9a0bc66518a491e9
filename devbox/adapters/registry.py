"""
Backend registry — one backend per distribution, chosen once.

The registry maps distribution IDs (from ``/etc/os-release``) to
package backends. Selection happens a single time at startup; after
that nothing branches on the distribution.
"""

from __future__ import annotations

import logging
from typing import Any

from devbox.adapters.base import PackageBackend
from devbox.adapters.shell.command import CommandRunner
from devbox.core.errors import PreconditionError

logger = logging.getLogger(__name__)


class BackendRegistry:
    """Central registry of package backends keyed by name.

    Features:
        - Register backends with the distribution IDs they serve
        - Select the backend for a detected distribution
        - Mock mode: always hand out the mock backend
    """

    def __init__(self, mock_backend: PackageBackend | None = None):
        self._backends: dict[str, PackageBackend] = {}
        self._distros: dict[str, str] = {}     # distro id or prefix* -> backend name
        self._mock = mock_backend

    @property
    def mock_mode(self) -> bool:
        return self._mock is not None

    def register(self, backend: PackageBackend, distros: list[str] | None = None) -> None:
        """Register a backend.

        Args:
            backend: The backend instance.
            distros: Distribution IDs it serves. A trailing ``*``
                matches by prefix (``opensuse*``).
        """
        name = backend.name
        if name in self._backends:
            logger.warning("Overwriting existing backend: %s", name)
        self._backends[name] = backend
        for distro in distros or []:
            self._distros[distro.lower()] = name
        logger.debug("Registered backend: %s for %s", name, distros or [])

    def get(self, name: str) -> PackageBackend | None:
        return self._backends.get(name)

    def list_backends(self) -> list[str]:
        return list(self._backends.keys())

    def supported_distros(self) -> list[str]:
        return sorted(self._distros.keys())

    def backend_name_for(self, distro_id: str) -> str | None:
        distro_id = distro_id.lower()
        if distro_id in self._distros:
            return self._distros[distro_id]
        for pattern, name in self._distros.items():
            if pattern.endswith("*") and distro_id.startswith(pattern[:-1]):
                return name
        return None

    def select(self, distro_id: str) -> PackageBackend:
        """Return the backend for ``distro_id``.

        Raises:
            PreconditionError: no backend serves this distribution.
        """
        name = self.backend_name_for(distro_id)
        if name is None:
            raise PreconditionError(
                f"Unsupported distribution: {distro_id!r} "
                f"(supported: {', '.join(self.supported_distros())})"
            )
        if self._mock is not None:
            logger.info("Mock mode: using %s instead of %s", self._mock.name, name)
            return self._mock
        backend = self._backends[name]
        logger.info("Selected %s backend for %s", backend.name, distro_id)
        return backend

    def backend_status(self) -> dict[str, dict[str, Any]]:
        status = {}
        for name, backend in self._backends.items():
            try:
                available = backend.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": backend.__class__.__name__,
            }
        return status


def default_registry(runner: CommandRunner, mock_backend: PackageBackend | None = None) -> BackendRegistry:
    """Registry with the stock apt and zypper backends."""
    from devbox.adapters.packaging.apt import AptBackend
    from devbox.adapters.packaging.zypper import ZypperBackend

    registry = BackendRegistry(mock_backend=mock_backend)
    registry.register(AptBackend(runner), distros=["debian"])
    registry.register(ZypperBackend(runner), distros=["opensuse-tumbleweed", "opensuse*"])
    return registry
