"""
Mock backend — in-memory test double for every backend operation.

Used by ``--mock`` and by the test-suite to exercise the engine
without touching a real package manager. Configurable to fail any
operation with any error from the taxonomy.
"""

from __future__ import annotations

from collections.abc import Iterable

from devbox.adapters.base import InstallOptions, PackageBackend
from devbox.core.data.releases import foreign_release_markers, is_foreign_version
from devbox.core.errors import PackageNotFoundError, ProvisionError


class MockBackend(PackageBackend):
    """Universal mock backend.

    By default every operation succeeds and every package name is
    known. ``known`` restricts the names ``install`` accepts.
    """

    def __init__(
        self,
        backend_name: str = "mock",
        *,
        installed: dict[str, str] | None = None,
        held: Iterable[str] = (),
        known: Iterable[str] | None = None,
        available: bool = True,
    ):
        self._name = backend_name
        self._available = available
        self.installed: dict[str, str] = dict(installed or {})
        self.held: set[str] = set(held)
        self.known: set[str] | None = set(known) if known is not None else None
        self.architectures: set[str] = set()
        self._failures: dict[str, ProvisionError] = {}
        self._call_log: list[tuple[str, tuple]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[tuple[str, tuple]]:
        """(operation, args) for every call received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls(self, operation: str) -> list[tuple]:
        """Arguments of every call to ``operation``."""
        return [args for op, args in self._call_log if op == operation]

    def set_failure(self, operation: str, error: ProvisionError) -> None:
        """Make every call to ``operation`` raise ``error``."""
        self._failures[operation] = error

    def clear_failure(self, operation: str) -> None:
        self._failures.pop(operation, None)

    def reset(self) -> None:
        """Clear call log and configured failures."""
        self._call_log.clear()
        self._failures.clear()

    def _record(self, operation: str, *args: object) -> None:
        self._call_log.append((operation, args))
        if operation in self._failures:
            raise self._failures[operation]

    def is_available(self) -> bool:
        return self._available

    def refresh(self) -> str:
        self._record("refresh")
        return "[mock] index refreshed"

    def install(
        self,
        names: Iterable[str],
        allow_downgrade: bool = False,
        options: InstallOptions | None = None,
    ) -> str:
        packages = list(names)
        self._record("install", tuple(packages), allow_downgrade)
        if self.known is not None:
            unknown = [p.split("=", 1)[0] for p in packages if p.split("=", 1)[0] not in self.known]
            if unknown:
                raise PackageNotFoundError(
                    f"Unknown package(s): {', '.join(unknown)}", packages=unknown,
                )
        for spec in packages:
            name, _, version = spec.partition("=")
            self.installed[name] = version.rstrip("*") or self.installed.get(name, "1.0")
        return f"[mock] installed {len(packages)} package(s)"

    def upgrade(self) -> str:
        self._record("upgrade")
        return "[mock] upgraded"

    def repair(self) -> str:
        self._record("repair")
        return "[mock] repaired"

    def is_installed(self, name: str) -> bool:
        self._record("is_installed", name)
        return name in self.installed

    def installed_version(self, name: str) -> str | None:
        self._record("installed_version", name)
        return self.installed.get(name)

    def held_packages(self) -> set[str]:
        self._record("held_packages")
        return set(self.held)

    def unhold(self, names: Iterable[str]) -> str:
        packages = sorted(names)
        self._record("unhold", tuple(packages))
        self.held.difference_update(packages)
        return f"[mock] unheld {len(packages)} package(s)"

    def foreign_release_packages(self, local_release_tag: str) -> set[str]:
        self._record("foreign_release_packages", local_release_tag)
        markers = foreign_release_markers(local_release_tag)
        return {n for n, v in self.installed.items() if is_foreign_version(v, markers)}

    def add_architecture(self, arch: str) -> str:
        self._record("add_architecture", arch)
        self.architectures.add(arch)
        return f"[mock] {arch} enabled"
