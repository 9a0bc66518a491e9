"""
Tests for os-release parsing and the precondition check.
"""

import pytest

from devbox.adapters.registry import default_registry
from devbox.core.errors import PreconditionError
from devbox.core.services.preconditions import check_preconditions, parse_os_release

TUMBLEWEED = """\
NAME="openSUSE Tumbleweed"
# VERSION="20240101"
ID="opensuse-tumbleweed"
ID_LIKE="opensuse suse"
VERSION_ID="20240101"
"""

UBUNTU = """\
NAME="Ubuntu"
VERSION_ID="24.04"
VERSION_CODENAME=noble
ID=ubuntu
ID_LIKE=debian
"""


class TestParseOsRelease:
    def test_debian(self, config):
        distro = parse_os_release(config.os_release_path)
        assert distro.id == "debian"
        assert distro.version_id == "12"
        assert distro.codename == "bookworm"
        assert distro.release_tag == "bookworm"
        assert distro.pretty == "Debian GNU/Linux 12"

    def test_tumbleweed(self, tmp_path):
        path = tmp_path / "os-release"
        path.write_text(TUMBLEWEED)
        distro = parse_os_release(path)
        assert distro.id == "opensuse-tumbleweed"
        assert distro.id_like == ("opensuse", "suse")
        assert distro.release_tag == "opensuse-tumbleweed"

    def test_missing(self, tmp_path):
        with pytest.raises(PreconditionError, match="not found"):
            parse_os_release(tmp_path / "nope")

    def test_no_id(self, tmp_path):
        path = tmp_path / "os-release"
        path.write_text('NAME="Mystery"\n')
        with pytest.raises(PreconditionError, match="no ID"):
            parse_os_release(path)


class TestCheckPreconditions:
    def test_debian_as_root(self, config, fake_runner):
        report = check_preconditions(config, default_registry(fake_runner), euid=0)
        assert report.backend == "apt"
        assert report.warnings == []
        assert report.to_dict()["distro"]["codename"] == "bookworm"

    def test_not_root(self, config, fake_runner):
        with pytest.raises(PreconditionError, match="must be run as root"):
            check_preconditions(config, default_registry(fake_runner), euid=1000)

    def test_unsupported_distribution(self, config, fake_runner):
        config.os_release_path.write_text(UBUNTU)
        with pytest.raises(PreconditionError, match="Unsupported"):
            check_preconditions(config, default_registry(fake_runner), euid=0)

    def test_tumbleweed(self, config, fake_runner):
        config.os_release_path.write_text(TUMBLEWEED)
        report = check_preconditions(config, default_registry(fake_runner), euid=0)
        assert report.backend == "zypper"
        assert report.warnings == []

    def test_other_debian_release_warns(self, config, fake_runner):
        config.os_release_path.write_text(
            'NAME="Debian GNU/Linux"\nID=debian\nVERSION_ID="13"\nVERSION_CODENAME=trixie\n'
        )
        report = check_preconditions(config, default_registry(fake_runner), euid=0)
        assert report.backend == "apt"
        assert len(report.warnings) == 1
        assert "debian 12" in report.warnings[0]

    def test_leap_warns(self, config, fake_runner):
        config.os_release_path.write_text('NAME="openSUSE Leap"\nID="opensuse-leap"\nVERSION_ID="15.6"\n')
        report = check_preconditions(config, default_registry(fake_runner), euid=0)
        assert report.backend == "zypper"
        assert report.warnings
        assert "Debian 12 and openSUSE Tumbleweed" in report.warnings[0]
