"""
Preconditions — checked once, before the first step.

A run needs a supported distribution and root privilege. Anything
else is left to the steps themselves.
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from devbox.adapters.registry import BackendRegistry
from devbox.core.config.loader import ProvisionConfig
from devbox.core.errors import PreconditionError

logger = logging.getLogger(__name__)

# Releases the default plan is written for. Others run after a warning.
TARGETED_RELEASES: dict[str, str] = {
    "debian": "12",
}
TARGETED_IDS = ("debian", "opensuse-tumbleweed")


@dataclass(frozen=True)
class DistroInfo:
    """The subset of os-release the run cares about."""

    id: str
    name: str = ""
    version_id: str = ""
    codename: str = ""
    id_like: tuple[str, ...] = ()

    @property
    def release_tag(self) -> str:
        """Codename when there is one (``bookworm``), else the id."""
        return self.codename or self.id

    @property
    def pretty(self) -> str:
        return f"{self.name or self.id} {self.version_id}".strip()


@dataclass
class PreconditionReport:
    """Passed preconditions, plus anything worth confirming."""

    distro: DistroInfo
    backend: str
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "distro": {
                "id": self.distro.id,
                "name": self.distro.name,
                "version_id": self.distro.version_id,
                "codename": self.distro.codename,
            },
            "backend": self.backend,
            "warnings": list(self.warnings),
        }


def parse_os_release(path: Path) -> DistroInfo:
    """Parse an os-release file.

    Raises:
        PreconditionError: the file is missing or has no ID.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise PreconditionError(f"{path} not found; cannot detect the distribution") from e
    except OSError as e:
        raise PreconditionError(f"Cannot read {path}: {e}") from e

    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""

    distro_id = values.get("ID", "").lower()
    if not distro_id:
        raise PreconditionError(f"{path} has no ID field")

    return DistroInfo(
        id=distro_id,
        name=values.get("NAME", ""),
        version_id=values.get("VERSION_ID", ""),
        codename=values.get("VERSION_CODENAME", ""),
        id_like=tuple(values.get("ID_LIKE", "").split()),
    )


def check_preconditions(
    config: ProvisionConfig,
    registry: BackendRegistry,
    *,
    euid: int | None = None,
) -> PreconditionReport:
    """Verify distribution and privilege.

    Args:
        euid: Effective uid to check; defaults to ``os.geteuid()``.

    Raises:
        PreconditionError: unsupported distribution or not root.
    """
    uid = os.geteuid() if euid is None else euid
    if uid != 0:
        raise PreconditionError("This command must be run as root (try: sudo devbox run)")

    distro = parse_os_release(config.os_release_path)
    backend = registry.backend_name_for(distro.id)
    if backend is None:
        raise PreconditionError(
            f"Unsupported: {distro.pretty} ({distro.id}); "
            f"supported: {', '.join(registry.supported_distros())}"
        )

    report = PreconditionReport(distro=distro, backend=backend)

    if distro.id not in TARGETED_IDS:
        report.warnings.append(f"Detected {distro.pretty}; the default plan targets Debian 12 and openSUSE Tumbleweed")
    target = TARGETED_RELEASES.get(distro.id)
    if target and distro.version_id != target:
        report.warnings.append(
            f"Detected {distro.pretty}; the default plan targets {distro.id} {target}"
        )

    logger.info("Detected: %s (backend: %s)", distro.pretty, backend)
    for w in report.warnings:
        logger.warning(w)
    return report
