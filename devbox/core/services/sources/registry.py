"""
Source registry — owns every write to repository and pin files.

Makes "this third-party repository is configured" an idempotent,
duplicate-free operation:

    sources.list                primary file, processed first, never deleted
    sources.list.d/*.list       supplementary files, lexicographic order
    preferences.d/<pin id>      one pin file per purpose, overwritten

deb822 ``.sources`` files are not read or written. Lines that are not
active entries (comments, blanks, ``deb-src``, malformed) are never
compared, rewritten or dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import NamedTuple

from devbox.adapters.base import PackageBackend
from devbox.adapters.shell.command import CommandRunner
from devbox.adapters.shell.filesystem import FileWriter, read_text
from devbox.core.config.loader import ProvisionConfig
from devbox.core.models.source import (
    AddResult,
    ComponentResult,
    PinRule,
    RemoveResult,
    RepoSource,
    WriteResult,
)
from devbox.core.services.sources.keys import SigningKeyInstaller
from devbox.core.services.sources.lines import (
    ensure_components,
    has_active_entries,
    is_active,
    normalize,
    plan_deduplication,
    split_lines,
)
from devbox.core.services.sources.pins import render_pin

logger = logging.getLogger(__name__)

FOREIGN_PIN_ID = "pin-foreign-packages"


class SourceEntry(NamedTuple):
    """One active repository line as found on disk."""

    path: Path
    line_no: int                    # 1-based
    line: str                       # normalized


class SourceRegistry:
    """Repository and pin files under one apt configuration tree.

    Args:
        sources_list: The primary sources file.
        sources_dir: Directory of supplementary ``*.list`` files.
        preferences_dir: Directory pin files are written to.
        files: Writer used for every mutation (carries dry-run).
        keys: Installer for signing keys; ``install_signing_key``
            needs one.
    """

    def __init__(
        self,
        sources_list: Path,
        sources_dir: Path,
        preferences_dir: Path,
        *,
        files: FileWriter | None = None,
        keys: SigningKeyInstaller | None = None,
    ):
        self.sources_list = sources_list
        self.sources_dir = sources_dir
        self.preferences_dir = preferences_dir
        self._files = files or FileWriter()
        self._keys = keys

    @classmethod
    def from_config(
        cls,
        config: ProvisionConfig,
        runner: CommandRunner,
        *,
        offline: bool = False,
    ) -> SourceRegistry:
        """Registry over the apt tree under ``config.root``.

        ``offline`` keeps signing keys from being downloaded.
        """
        files = FileWriter(dry_run=config.dry_run)
        keys = SigningKeyInstaller(
            runner,
            files,
            root=config.root,
            timeout=config.network_timeout,
            offline=offline,
        )
        return cls(
            config.sources_list_path,
            config.sources_dir_path,
            config.preferences_dir_path,
            files=files,
            keys=keys,
        )

    @property
    def dry_run(self) -> bool:
        return self._files.dry_run

    # ── discovery ───────────────────────────────────────────────

    def repo_files(self) -> list[Path]:
        """Repository files in processing order."""
        files: list[Path] = []
        if self.sources_list.is_file():
            files.append(self.sources_list)
        if self.sources_dir.is_dir():
            files.extend(sorted(p for p in self.sources_dir.glob("*.list") if p.is_file()))
        return files

    def _read_all(self) -> list[tuple[Path, str]]:
        return [(path, read_text(path)) for path in self.repo_files()]

    def list_entries(self) -> list[SourceEntry]:
        """Every active entry line, in processing order."""
        entries: list[SourceEntry] = []
        for path, text in self._read_all():
            for n, line in enumerate(split_lines(text), start=1):
                if is_active(line):
                    entries.append(SourceEntry(path, n, normalize(line)))
        return entries

    def contains(self, entry_line: str) -> bool:
        """Whether an equivalent active line exists in any repo file."""
        wanted = normalize(entry_line)
        return any(e.line == wanted for e in self.list_entries())

    def source_path(self, source: RepoSource) -> Path:
        return self.sources_dir / source.file_name

    def pin_path(self, pin: PinRule) -> Path:
        return self.preferences_dir / pin.id

    # ── repositories ────────────────────────────────────────────

    def add_repo(self, source: RepoSource) -> AddResult:
        """Append ``source.entry_line`` to its dedicated file unless present.

        The check runs against every active line of every repo file,
        so a line someone already put in the primary file is not
        declared a second time.
        """
        if self.contains(source.entry_line):
            logger.info("Repository %s already configured", source.id)
            return AddResult.ALREADY_PRESENT

        path = self.source_path(source)
        existing = read_text(path) if path.is_file() else ""
        if existing and not existing.endswith("\n"):
            existing += "\n"
        self._files.write(path, f"{existing}{source.entry_line}\n")
        logger.info("Repository %s added to %s", source.id, path)
        return AddResult.ADDED

    def remove_repo(self, source: RepoSource) -> RemoveResult:
        """Delete the source's dedicated file."""
        if self._files.remove(self.source_path(source)):
            logger.info("Repository %s removed", source.id)
            return RemoveResult.REMOVED
        return RemoveResult.NOT_PRESENT

    def deduplicate_all(self) -> int:
        """Drop repeated active lines across all repo files.

        The first occurrence in processing order survives. Supplementary
        files left without active entries are deleted; the primary file
        is only ever rewritten.

        Returns:
            Number of duplicate lines removed.
        """
        removed = 0
        for plan in plan_deduplication(self._read_all()):
            for line in plan.removed:
                logger.warning("Duplicate removed from %s: %s", plan.path, line)
            removed += len(plan.removed)

            if plan.path != self.sources_list and plan.empty:
                logger.info("Removing source file without active entries: %s", plan.path)
                self._files.remove(plan.path)
            elif plan.changed:
                self._files.write(plan.path, "".join(plan.kept))
                logger.info("Cleaned: %s", plan.path)

        if removed:
            logger.info("%d duplicate source line(s) removed", removed)
        else:
            logger.info("No duplicate sources found")
        return removed

    def enable_foreign_release_component(self, component: str) -> ComponentResult:
        """Add ``component`` (and companions) to every active primary line.

        Rewrites in place instead of adding a new file, then removes a
        leftover ``<component>.list`` from the supplementary directory
        once the primary file carries the component.
        """
        result = ComponentResult(component=component)
        if not self.sources_list.is_file():
            logger.warning("No primary sources file at %s", self.sources_list)
            return result

        original = split_lines(read_text(self.sources_list))
        rewritten = [ensure_components(line, component) for line in original]
        result.lines_changed = sum(1 for a, b in zip(original, rewritten) if a != b)
        if result.lines_changed:
            self._files.write(self.sources_list, "".join(rewritten))
            logger.info(
                "Enabled %s on %d line(s) of %s",
                component, result.lines_changed, self.sources_list,
            )

        if has_active_entries(rewritten):
            legacy = self.sources_dir / f"{component}.list"
            if self._files.remove(legacy):
                logger.info("Removed redundant %s", legacy)
                result.removed_files.append(str(legacy))
        return result

    # ── pins ────────────────────────────────────────────────────

    def apply_pin(self, pin: PinRule) -> WriteResult:
        """Write (overwrite) the pin file for ``pin.id``."""
        path = self.pin_path(pin)
        result = self._files.write(path, render_pin(pin))
        if result is WriteResult.WRITTEN:
            logger.info("Pin %s written to %s", pin.id, path)
        return result

    def apply_foreign_pin(
        self,
        packages: Iterable[str],
        release_tag: str,
        *,
        pin_id: str = FOREIGN_PIN_ID,
        priority: int = 1001,
    ) -> WriteResult | None:
        """Pin each foreign package back to ``release_tag``.

        Writes a reviewable per-package template. Returns None and
        writes nothing when ``packages`` is empty.
        """
        names = sorted(set(packages))
        if not names:
            logger.info("No foreign-release packages detected")
            return None
        pin = PinRule(
            id=pin_id,
            package_patterns=names,
            release_tag=release_tag,
            priority=priority,
            per_package=True,
            comment=["Generated by devbox", "Review and adjust as needed"],
        )
        return self.apply_pin(pin)

    # ── keys and full repository setup ──────────────────────────

    def install_signing_key(self, source: RepoSource) -> WriteResult | None:
        """Install the source's signing key; None when it has none."""
        if source.signing_key is None:
            return None
        if self._keys is None:
            raise RuntimeError("SourceRegistry was built without a key installer")
        return self._keys.install(source.signing_key)

    def ensure_repo(self, source: RepoSource, backend: PackageBackend | None = None) -> AddResult:
        """Key, entry line, index refresh and pin for one repository.

        The backend index is refreshed only when the line was newly
        added. The pin, when the source has one, is always applied.
        """
        self.install_signing_key(source)
        result = self.add_repo(source)
        if result is AddResult.ADDED and backend is not None:
            backend.refresh()
        if source.pin is not None:
            self.apply_pin(source.pin)
        return result
