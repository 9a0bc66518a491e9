"""
zypper backend — openSUSE Tumbleweed and Leap.

Every zypper call runs with ``--non-interactive``; queries use rpm.
"""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Iterable

from devbox.adapters.base import InstallOptions, PackageBackend
from devbox.adapters.packaging.failures import classify_zypper_failure
from devbox.adapters.shell.command import CommandResult, CommandRunner
from devbox.core.data.releases import foreign_release_markers, is_foreign_version

logger = logging.getLogger(__name__)

_ZYPPER = ["zypper", "--non-interactive"]

# "1 | curl | package | (any)" rows of ``zypper locks``
_LOCK_ROW = re.compile(r"^\s*\d+\s*\|\s*([^|\s]+)\s*\|")


class ZypperBackend(PackageBackend):
    """Package backend for zypper/rpm systems."""

    def __init__(self, runner: CommandRunner, *, query_timeout: float = 30):
        self._runner = runner
        self._query_timeout = query_timeout

    @property
    def name(self) -> str:
        return "zypper"

    def is_available(self) -> bool:
        return shutil.which("zypper") is not None

    def _mutate(self, args: list[str]) -> CommandResult:
        r = self._runner.run([*_ZYPPER, *args])
        if not r.ok:
            raise classify_zypper_failure(r)
        return r

    def _query(self, argv: list[str]) -> CommandResult:
        return self._runner.run(argv, timeout=self._query_timeout, mutating=False)

    def refresh(self) -> str:
        self._mutate(["refresh"])
        return "repositories refreshed"

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

        args = ["install"]
        if opts.assume_yes:
            args.append("-y")
        if opts.no_recommends:
            args.append("--no-recommends")
        if allow_downgrade:
            args.append("--oldpackage")
        args += packages

        self._mutate(args)
        return f"installed {len(packages)} package(s)"

    def upgrade(self) -> str:
        self._mutate(["refresh"])
        self._mutate(["dist-upgrade", "--allow-vendor-change"])
        return "system upgraded"

    def repair(self) -> str:
        # verify exits non-zero when it finds (and fixes) problems
        r = self._runner.run([*_ZYPPER, "verify"])
        if not r.ok:
            logger.warning("zypper verify reported problems (exit %d)", r.returncode)
        self._mutate(["clean", "--all"])
        self._mutate(["refresh"])
        return "package integrity verified"

    def unhold(self, names: Iterable[str]) -> str:
        packages = sorted(names)
        if not packages:
            return "nothing held"
        self._mutate(["removelock", *packages])
        return f"unlocked {len(packages)} package(s)"

    def is_installed(self, name: str) -> bool:
        return self._query(["rpm", "-q", name]).ok

    def installed_version(self, name: str) -> str | None:
        r = self._query(["rpm", "-q", "--qf", "%{VERSION}-%{RELEASE}", name])
        version = r.stdout.strip()
        return version if r.ok and version else None

    def held_packages(self) -> set[str]:
        r = self._query([*_ZYPPER, "locks"])
        if not r.ok:
            raise classify_zypper_failure(r)
        held: set[str] = set()
        for line in r.stdout.splitlines():
            m = _LOCK_ROW.match(line)
            if m:
                held.add(m.group(1))
        return held

    def foreign_release_packages(self, local_release_tag: str) -> set[str]:
        r = self._query(["rpm", "-qa", "--qf", "%{NAME} %{VERSION}-%{RELEASE}\\n"])
        if not r.ok:
            raise classify_zypper_failure(r)
        markers = foreign_release_markers(local_release_tag)
        return {
            parts[0]
            for parts in (line.split() for line in r.stdout.splitlines())
            if len(parts) == 2 and is_foreign_version(parts[1], markers)
        }
