"""
Package backend base — the contract between the engine and an OS
package manager.

One backend per distribution, chosen once at startup. The engine and
the source registry only talk to package managers through this
interface, never by branching on the distribution themselves.

Unlike receipts, backends *raise*: failures come out as the typed
errors in ``devbox.core.errors`` and the orchestrator converts them
at the step boundary.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from pydantic import BaseModel

from devbox.core.errors import CommandError


class InstallOptions(BaseModel):
    """Flags for a single install call."""

    no_recommends: bool = True
    target_release: str | None = None   # apt ``-t <release>``
    assume_yes: bool = True


class PackageBackend(ABC):
    """Abstract base class for package backends.

    To add a distribution:
        1. Subclass PackageBackend
        2. Implement the abstract methods
        3. Register it in the BackendRegistry under its distro IDs
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier ('apt', 'zypper', ...)."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the package manager binary exists. Never raises."""

    @abstractmethod
    def refresh(self) -> str:
        """Re-synchronize the package index.

        Raises:
            TransientNetworkError: the remote index is unreachable.
        """

    @abstractmethod
    def install(
        self,
        names: Iterable[str],
        allow_downgrade: bool = False,
        options: InstallOptions | None = None,
    ) -> str:
        """Install or upgrade to the latest version allowed by pins.

        Raises:
            PackageNotFoundError: a name is unknown to the backend.
            PackageConflictError: the install violates a hold or pin.
        """

    @abstractmethod
    def upgrade(self) -> str:
        """Upgrade every installed package."""

    @abstractmethod
    def repair(self) -> str:
        """Finish interrupted installs and fix broken dependencies."""

    @abstractmethod
    def is_installed(self, name: str) -> bool:
        ...

    @abstractmethod
    def installed_version(self, name: str) -> str | None:
        ...

    @abstractmethod
    def held_packages(self) -> set[str]:
        """Packages marked held/locked against upgrades."""

    @abstractmethod
    def unhold(self, names: Iterable[str]) -> str:
        ...

    @abstractmethod
    def foreign_release_packages(self, local_release_tag: str) -> set[str]:
        """Installed packages whose version marks another release channel."""

    def add_architecture(self, arch: str) -> str:
        """Enable a foreign architecture. Only some backends support it."""
        raise CommandError(f"{self.name} backend does not support foreign architectures")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
