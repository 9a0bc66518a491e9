"""
Filesystem adapter — idempotent, atomic configuration file writes.

Every repository, pin, keyring and artifact file goes through
``FileWriter``. Writes compare content first and only touch the disk
when something changed; when they do, they go to a temp file in the
same directory which is then renamed over the target, so a crash
never leaves a half-written sources file behind.

OS failures surface as ``ConfigWriteError``.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from devbox.core.errors import ConfigWriteError
from devbox.core.models.source import WriteResult

logger = logging.getLogger(__name__)


def read_text(path: Path) -> str:
    """Read ``path`` keeping line endings exactly as stored.

    Undecodable bytes (Latin-1 comments in old sources files) are kept as
    surrogates so ``FileWriter.write`` puts them back unchanged.
    """
    try:
        return path.read_bytes().decode("utf-8", errors="surrogateescape")
    except OSError as e:
        raise ConfigWriteError(f"Cannot read {path}: {e}") from e


class FileWriter:
    """Write and delete configuration files, honoring dry-run.

    Args:
        dry_run: Compute and log results without touching the disk.
    """

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def write(self, path: Path, content: str | bytes, mode: int = 0o644) -> WriteResult:
        """Make ``path`` hold exactly ``content``.

        Returns:
            WRITTEN if the file was created or changed, UNCHANGED otherwise.

        Raises:
            ConfigWriteError: directory or file could not be written.
        """
        data = content.encode("utf-8", errors="surrogateescape") if isinstance(content, str) else content

        try:
            if path.is_file() and path.read_bytes() == data:
                logger.debug("Unchanged: %s", path)
                return WriteResult.UNCHANGED
        except OSError as e:
            raise ConfigWriteError(f"Cannot read {path}: {e}") from e

        if self.dry_run:
            logger.info("[dry-run] would write %s (%d bytes)", path, len(data))
            return WriteResult.WRITTEN

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
            )
            tmp = Path(tmp_path)
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                tmp.chmod(mode)
                tmp.replace(path)
            except Exception:
                tmp.unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ConfigWriteError(f"Cannot write {path}: {e}") from e

        logger.debug("Wrote %s (%d bytes)", path, len(data))
        return WriteResult.WRITTEN

    def remove(self, path: Path) -> bool:
        """Delete ``path``. Returns False when it was not there."""
        if not path.exists():
            return False
        if self.dry_run:
            logger.info("[dry-run] would remove %s", path)
            return True
        try:
            path.unlink()
        except OSError as e:
            raise ConfigWriteError(f"Cannot remove {path}: {e}") from e
        logger.debug("Removed %s", path)
        return True
