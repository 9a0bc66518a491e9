"""
apt backend — Debian and derivatives.

Mutations go through ``apt-get``/``dpkg``/``apt-mark``; queries go
through ``dpkg-query``. Every call is bounded by the runner's deadline.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable

from devbox.adapters.base import InstallOptions, PackageBackend
from devbox.adapters.packaging.failures import classify_apt_failure
from devbox.adapters.shell.command import CommandResult, CommandRunner
from devbox.core.data.releases import foreign_release_markers, is_foreign_version

logger = logging.getLogger(__name__)


class AptBackend(PackageBackend):
    """Package backend for apt-get/dpkg systems."""

    def __init__(self, runner: CommandRunner, *, query_timeout: float = 30):
        self._runner = runner
        self._query_timeout = query_timeout

    @property
    def name(self) -> str:
        return "apt"

    def is_available(self) -> bool:
        return shutil.which("apt-get") is not None

    # ── mutations ───────────────────────────────────────────────

    def _mutate(self, argv: list[str], *, timeout: float | None = None) -> CommandResult:
        r = self._runner.run(argv, timeout=timeout)
        if not r.ok:
            raise classify_apt_failure(r)
        return r

    def refresh(self) -> str:
        self._mutate(["apt-get", "update", "-y"])
        return "package index refreshed"

    def install(
        self,
        names: Iterable[str],
        allow_downgrade: bool = False,
        options: InstallOptions | None = None,
    ) -> str:
        packages = list(names)
        if not packages:
            return "nothing to install"
        opts = options or InstallOptions()

        argv = ["apt-get", "install"]
        if opts.assume_yes:
            argv.append("-y")
        if opts.no_recommends:
            argv.append("--no-install-recommends")
        if allow_downgrade:
            argv.append("--allow-downgrades")
        if opts.target_release:
            argv += ["-t", opts.target_release]
        argv += packages

        self._mutate(argv)
        return f"installed {len(packages)} package(s)"

    def upgrade(self) -> str:
        self._mutate(["apt-get", "upgrade", "-y"])
        self._mutate(["apt-get", "dist-upgrade", "-y"])
        self._mutate(["apt-get", "autoremove", "-y"])
        self._mutate(["apt-get", "autoclean", "-y"])
        return "system upgraded"

    def repair(self) -> str:
        self._mutate(["dpkg", "--configure", "-a"])
        self._mutate(["apt-get", "install", "-f", "-y"])
        self._mutate(["apt-get", "autoremove", "-y"])
        self._mutate(["apt-get", "autoclean", "-y"])
        return "broken dependencies repaired"

    def unhold(self, names: Iterable[str]) -> str:
        packages = sorted(names)
        if not packages:
            return "nothing held"
        self._mutate(["apt-mark", "unhold", *packages])
        return f"unheld {len(packages)} package(s)"

    def add_architecture(self, arch: str) -> str:
        r = self._runner.run(
            ["dpkg", "--print-foreign-architectures"],
            timeout=self._query_timeout,
            mutating=False,
        )
        if arch in r.stdout.split():
            return f"{arch} already enabled"
        self._mutate(["dpkg", "--add-architecture", arch])
        self.refresh()
        return f"{arch} enabled"

    # ── queries ─────────────────────────────────────────────────

    def _query(self, argv: list[str]) -> CommandResult:
        return self._runner.run(argv, timeout=self._query_timeout, mutating=False)

    def is_installed(self, name: str) -> bool:
        r = self._query(["dpkg-query", "-W", "-f=${Status}", name])
        return r.ok and "install ok installed" in r.stdout

    def installed_version(self, name: str) -> str | None:
        r = self._query(["dpkg-query", "-W", "-f=${Version}", name])
        version = r.stdout.strip()
        return version if r.ok and version else None

    def held_packages(self) -> set[str]:
        r = self._query(["apt-mark", "showhold"])
        if not r.ok:
            raise classify_apt_failure(r)
        return {line.strip() for line in r.stdout.splitlines() if line.strip()}

    def foreign_release_packages(self, local_release_tag: str) -> set[str]:
        r = self._query(["dpkg-query", "-W", "-f=${Package} ${Version}\\n"])
        if not r.ok:
            raise classify_apt_failure(r)
        markers = foreign_release_markers(local_release_tag)
        foreign: set[str] = set()
        for line in r.stdout.splitlines():
            parts = line.split()
            if len(parts) == 2 and is_foreign_version(parts[1], markers):
                foreign.add(parts[0])
        if foreign:
            logger.warning(
                "%d package(s) from outside %s: %s",
                len(foreign), local_release_tag, ", ".join(sorted(foreign)),
            )
        return foreign
