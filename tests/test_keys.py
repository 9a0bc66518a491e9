"""
Tests for signing key installation and the key download helper.
"""

import urllib.error
from pathlib import Path

import pytest

from devbox.adapters.shell.filesystem import FileWriter
from devbox.core.errors import OperationTimeoutError, TransientNetworkError
from devbox.core.models.source import SigningKey, WriteResult
from devbox.core.services.sources import keys
from devbox.core.services.sources.keys import SigningKeyInstaller, fetch_url

KEY = SigningKey(
    url="https://download.docker.com/linux/debian/gpg",
    keyring="/etc/apt/keyrings/docker.gpg",
)
ARMORED = b"-----BEGIN PGP PUBLIC KEY BLOCK-----\n\nabc\n-----END PGP PUBLIC KEY BLOCK-----\n"


class _Fetch:
    def __init__(self, data: bytes):
        self.data = data
        self.calls: list[tuple[str, float]] = []

    def __call__(self, url: str, timeout: float) -> bytes:
        self.calls.append((url, timeout))
        return self.data


class TestSigningKeyInstaller:
    def test_keyring_path_under_root(self, tmp_path, fake_runner):
        inst = SigningKeyInstaller(fake_runner, FileWriter(), root=tmp_path)
        assert inst.keyring_path(KEY) == tmp_path / "etc/apt/keyrings/docker.gpg"

    def test_binary_key_written_as_is(self, tmp_path, fake_runner):
        fetch = _Fetch(b"\x99\x01binary")
        inst = SigningKeyInstaller(fake_runner, FileWriter(), root=tmp_path, timeout=5, fetch=fetch)

        assert inst.install(KEY) is WriteResult.WRITTEN
        assert (tmp_path / "etc/apt/keyrings/docker.gpg").read_bytes() == b"\x99\x01binary"
        assert fetch.calls == [(KEY.url, 5)]
        assert fake_runner.calls == []

    def test_rerun_is_unchanged(self, tmp_path, fake_runner):
        inst = SigningKeyInstaller(fake_runner, FileWriter(), root=tmp_path, fetch=_Fetch(b"key"))
        inst.install(KEY)
        assert inst.install(KEY) is WriteResult.UNCHANGED

    def test_armored_key_is_dearmored(self, tmp_path, fake_runner, monkeypatch):
        inst = SigningKeyInstaller(fake_runner, FileWriter(), root=tmp_path, fetch=_Fetch(ARMORED))
        monkeypatch.setattr(inst, "_dearmor", lambda data: b"dearmored")

        inst.install(KEY)
        assert (tmp_path / "etc/apt/keyrings/docker.gpg").read_bytes() == b"dearmored"

    def test_dearmor_runs_gpg(self, tmp_path):
        class GpgRunner:
            def __init__(self):
                self.calls = []

            def run(self, argv, **kwargs):
                self.calls.append((argv, kwargs))
                out = Path(argv[argv.index("-o") + 1])
                out.write_bytes(b"binary")

        runner = GpgRunner()
        inst = SigningKeyInstaller(runner, FileWriter(), root=tmp_path, fetch=_Fetch(ARMORED))
        inst.install(KEY)

        argv, kwargs = runner.calls[0]
        assert argv[:4] == ["gpg", "--batch", "--yes", "--dearmor"]
        assert kwargs["check"] is True
        assert kwargs["mutating"] is False
        assert (tmp_path / "etc/apt/keyrings/docker.gpg").read_bytes() == b"binary"

    def test_dearmor_disabled(self, tmp_path, fake_runner):
        key = KEY.model_copy(update={"dearmor": False})
        inst = SigningKeyInstaller(fake_runner, FileWriter(), root=tmp_path, fetch=_Fetch(ARMORED))
        inst.install(key)
        assert (tmp_path / "etc/apt/keyrings/docker.gpg").read_bytes() == ARMORED

    def test_offline_never_fetches(self, tmp_path, fake_runner):
        fetch = _Fetch(b"key")
        inst = SigningKeyInstaller(fake_runner, FileWriter(), root=tmp_path, fetch=fetch, offline=True)

        assert inst.install(KEY) is WriteResult.WRITTEN
        assert fetch.calls == []
        assert not (tmp_path / "etc/apt/keyrings/docker.gpg").exists()

        target = tmp_path / "etc/apt/keyrings/docker.gpg"
        target.parent.mkdir(parents=True)
        target.write_bytes(b"old")
        assert inst.install(KEY) is WriteResult.UNCHANGED

    def test_dry_run_writes_nothing(self, tmp_path, fake_runner):
        inst = SigningKeyInstaller(fake_runner, FileWriter(dry_run=True), root=tmp_path, fetch=_Fetch(b"key"))
        assert inst.install(KEY) is WriteResult.WRITTEN
        assert not (tmp_path / "etc/apt/keyrings/docker.gpg").exists()

    def test_fetch_errors_propagate(self, tmp_path, fake_runner):
        def fetch(url, timeout):
            raise OperationTimeoutError("slow key server", timeout=timeout)

        inst = SigningKeyInstaller(fake_runner, FileWriter(), root=tmp_path, fetch=fetch)
        with pytest.raises(OperationTimeoutError):
            inst.install(KEY)


class TestFetchUrl:
    def test_timeout(self, monkeypatch):
        def urlopen(req, timeout):
            raise TimeoutError("timed out")

        monkeypatch.setattr(keys.urllib.request, "urlopen", urlopen)
        with pytest.raises(OperationTimeoutError):
            fetch_url("https://keys.example.com/gpg", 3)

    def test_wrapped_timeout(self, monkeypatch):
        def urlopen(req, timeout):
            raise urllib.error.URLError(TimeoutError("timed out"))

        monkeypatch.setattr(keys.urllib.request, "urlopen", urlopen)
        with pytest.raises(OperationTimeoutError):
            fetch_url("https://keys.example.com/gpg", 3)

    def test_unreachable(self, monkeypatch):
        def urlopen(req, timeout):
            raise urllib.error.URLError("Name or service not known")

        monkeypatch.setattr(keys.urllib.request, "urlopen", urlopen)
        with pytest.raises(TransientNetworkError, match="Name or service not known"):
            fetch_url("https://keys.example.com/gpg", 3)
