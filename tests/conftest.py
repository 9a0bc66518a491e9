"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import textwrap
from collections.abc import Sequence
from pathlib import Path

import pytest

from devbox.adapters.shell.command import CommandResult
from devbox.core.config.loader import ProvisionConfig
from devbox.core.services.sources.registry import SourceRegistry

DEBIAN_OS_RELEASE = textwrap.dedent("""\
    PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"
    NAME="Debian GNU/Linux"
    VERSION_ID="12"
    VERSION="12 (bookworm)"
    VERSION_CODENAME=bookworm
    ID=debian
""")


class FakeRunner:
    """Records argv of every call and answers from a script.

    ``respond(prefix, ...)`` makes any argv starting with ``prefix``
    return that result; everything else succeeds with no output.
    """

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []
        self._responses: list[tuple[list[str], CommandResult]] = []
        self._errors: list[tuple[list[str], Exception]] = []

    def fail(self, prefix: Sequence[str], error: Exception) -> None:
        """Raise ``error`` for any argv starting with ``prefix``."""
        self._errors.append((list(prefix), error))

    def respond(self, prefix: Sequence[str], stdout: str = "", stderr: str = "", returncode: int = 0) -> None:
        self._responses.append((
            list(prefix),
            CommandResult(argv=list(prefix), returncode=returncode, stdout=stdout, stderr=stderr),
        ))

    def run(self, argv, *, timeout=None, check=False, mutating=True, input_text=None, cwd=None):
        argv = list(argv)
        self.calls.append(argv)
        self.kwargs.append({"timeout": timeout, "check": check, "mutating": mutating})
        for prefix, error in self._errors:
            if argv[: len(prefix)] == prefix:
                raise error
        for prefix, result in reversed(self._responses):
            if argv[: len(prefix)] == prefix:
                return CommandResult(
                    argv=argv,
                    returncode=result.returncode,
                    stdout=result.stdout,
                    stderr=result.stderr,
                )
        return CommandResult(argv=argv, returncode=0, stdout="", stderr="")


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def apt_root(tmp_path: Path) -> Path:
    """A filesystem root holding an empty apt configuration tree."""
    root = tmp_path / "root"
    (root / "etc" / "apt" / "sources.list.d").mkdir(parents=True)
    (root / "etc" / "apt" / "preferences.d").mkdir(parents=True)
    (root / "etc" / "os-release").write_text(DEBIAN_OS_RELEASE)
    return root


@pytest.fixture
def config(apt_root: Path) -> ProvisionConfig:
    return ProvisionConfig(root=apt_root, assume_yes=True)


@pytest.fixture
def sources_list(apt_root: Path) -> Path:
    return apt_root / "etc" / "apt" / "sources.list"


@pytest.fixture
def sources_dir(apt_root: Path) -> Path:
    return apt_root / "etc" / "apt" / "sources.list.d"


@pytest.fixture
def registry(config: ProvisionConfig, fake_runner: FakeRunner) -> SourceRegistry:
    return SourceRegistry.from_config(config, fake_runner)
