"""
Signing key installation — fetch a repository trust key into a keyring.

Key servers are the classic place a provisioning run hangs, so the
fetch is bounded by the network timeout and a timeout is a failure,
not a retry. ASCII-armored keys are converted with ``gpg --dearmor``
when the source asks for it.
"""

from __future__ import annotations

import logging
import tempfile
import urllib.error
import urllib.request
from collections.abc import Callable
from pathlib import Path

from devbox.adapters.shell.command import CommandRunner
from devbox.adapters.shell.filesystem import FileWriter
from devbox.core.errors import OperationTimeoutError, TransientNetworkError
from devbox.core.models.source import SigningKey, WriteResult

logger = logging.getLogger(__name__)

_ARMOR_HEADER = b"-----BEGIN PGP PUBLIC KEY BLOCK-----"

Fetcher = Callable[[str, float], bytes]


def fetch_url(url: str, timeout: float) -> bytes:
    """Download ``url`` with a deadline.

    Raises:
        OperationTimeoutError: no answer within ``timeout`` seconds.
        TransientNetworkError: DNS, connection or HTTP failure.
    """
    req = urllib.request.Request(url, headers={"User-Agent": "devbox-provisioner/1.0"})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return resp.read()
    except TimeoutError as e:
        raise OperationTimeoutError(f"Key download timed out after {timeout}s: {url}", timeout=timeout) from e
    except urllib.error.URLError as e:
        if isinstance(e.reason, TimeoutError):
            raise OperationTimeoutError(
                f"Key download timed out after {timeout}s: {url}", timeout=timeout,
            ) from e
        raise TransientNetworkError(f"Cannot fetch signing key {url}: {e.reason}") from e


class SigningKeyInstaller:
    """Put signing keys into keyring files.

    Args:
        runner: Used for ``gpg --dearmor``.
        files: Writer for the keyring file (carries dry-run).
        root: Prefix under which absolute keyring paths are resolved.
        timeout: Deadline for the download and for gpg.
        fetch: ``(url, timeout) -> bytes``; defaults to ``fetch_url``.
        offline: Never fetch; report what would be installed.
    """

    def __init__(
        self,
        runner: CommandRunner,
        files: FileWriter,
        *,
        root: Path = Path("/"),
        timeout: float = 60,
        fetch: Fetcher | None = None,
        offline: bool = False,
    ):
        self._runner = runner
        self._files = files
        self._root = root
        self._timeout = timeout
        self._fetch = fetch or fetch_url
        self.offline = offline

    def keyring_path(self, key: SigningKey) -> Path:
        return self._root / key.keyring.lstrip("/")

    def install(self, key: SigningKey) -> WriteResult:
        """Fetch ``key`` and make its keyring file hold it."""
        target = self.keyring_path(key)
        if self.offline:
            logger.info("[offline] would fetch %s into %s", key.url, target)
            return WriteResult.UNCHANGED if target.is_file() else WriteResult.WRITTEN

        data = self._fetch(key.url, self._timeout)
        if key.dearmor and data.lstrip().startswith(_ARMOR_HEADER):
            data = self._dearmor(data)
        result = self._files.write(target, data, mode=0o644)
        if result is WriteResult.WRITTEN:
            logger.info("Signing key installed: %s", target)
        return result

    def _dearmor(self, armored: bytes) -> bytes:
        # gpg writes binary output, so go through files rather than pipes
        with tempfile.TemporaryDirectory(prefix="devbox-key-") as tmp:
            src = Path(tmp) / "key.asc"
            out = Path(tmp) / "key.gpg"
            src.write_bytes(armored)
            self._runner.run(
                ["gpg", "--batch", "--yes", "--dearmor", "-o", str(out), str(src)],
                timeout=self._timeout,
                check=True,
                mutating=False,
            )
            return out.read_bytes()
