"""
Tests for devbox.yml loading, environment overrides and path resolution.
"""

from pathlib import Path

import pytest

from devbox.core.config.loader import ProvisionConfig, find_config_file, load_config
from devbox.core.errors import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("DEVBOX_ROOT", "DEVBOX_ASSUME_YES", "DEVBOX_DRY_RUN"):
        monkeypatch.delenv(var, raising=False)


class TestProvisionConfig:
    def test_defaults(self):
        config = ProvisionConfig()
        assert config.root == Path("/")
        assert config.sources_list_path == Path("/etc/apt/sources.list")
        assert not config.assume_yes
        assert not config.dry_run
        assert config.env["DEBIAN_FRONTEND"] == "noninteractive"

    def test_resolve_under_root(self, tmp_path):
        config = ProvisionConfig(root=tmp_path)
        assert config.resolve("/etc/apt/sources.list") == tmp_path / "etc/apt/sources.list"
        assert config.sources_dir_path == tmp_path / "etc/apt/sources.list.d"
        assert config.preferences_dir_path == tmp_path / "etc/apt/preferences.d"


class TestLoadConfig:
    def test_no_file_gives_defaults(self):
        config = load_config(search=False)
        assert config == ProvisionConfig()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "devbox.yml"
        path.write_text(
            "root: /srv/chroot\n"
            "assume_yes: true\n"
            "command_timeout: 900\n"
            "variables:\n"
            "  php_version: '8.2'\n"
        )
        config = load_config(path)
        assert config.root == Path("/srv/chroot")
        assert config.assume_yes
        assert config.command_timeout == 900
        assert config.variables == {"php_version": "8.2"}

    def test_wrapped_under_devbox_key(self, tmp_path):
        path = tmp_path / "devbox.yml"
        path.write_text("devbox:\n  dry_run: true\n")
        assert load_config(path).dry_run

    def test_empty_file(self, tmp_path):
        path = tmp_path / "devbox.yml"
        path.write_text("")
        assert load_config(path) == ProvisionConfig()

    def test_env_keeps_noninteractive_defaults(self, tmp_path):
        path = tmp_path / "devbox.yml"
        path.write_text("env:\n  http_proxy: http://proxy:3128\n")
        env = load_config(path).env
        assert env["http_proxy"] == "http://proxy:3128"
        assert env["DEBIAN_FRONTEND"] == "noninteractive"

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "devbox.yml"
        path.write_text("assume_yess: true\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)

    def test_bad_timeout(self, tmp_path):
        path = tmp_path / "devbox.yml"
        path.write_text("query_timeout: 0\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "devbox.yml"
        path.write_text("root: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "devbox.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yml")


class TestEnvOverrides:
    def test_env_wins_over_file(self, tmp_path, monkeypatch):
        path = tmp_path / "devbox.yml"
        path.write_text("assume_yes: false\nroot: /a\n")
        monkeypatch.setenv("DEVBOX_ASSUME_YES", "yes")
        monkeypatch.setenv("DEVBOX_ROOT", str(tmp_path))
        config = load_config(path)
        assert config.assume_yes
        assert config.root == tmp_path

    def test_false_values(self, monkeypatch):
        monkeypatch.setenv("DEVBOX_DRY_RUN", "off")
        assert not load_config(search=False).dry_run

    def test_bad_boolean(self, monkeypatch):
        monkeypatch.setenv("DEVBOX_DRY_RUN", "maybe")
        with pytest.raises(ConfigError, match="DEVBOX_DRY_RUN"):
            load_config(search=False)


class TestFindConfigFile:
    def test_walks_upward(self, tmp_path):
        (tmp_path / "devbox.yml").write_text("")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == (tmp_path / "devbox.yml").resolve()

    def test_search_from_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "devbox.yml").write_text("dry_run: true\n")
        monkeypatch.chdir(tmp_path)
        assert load_config().dry_run
