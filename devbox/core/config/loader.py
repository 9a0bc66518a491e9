"""
Configuration loader — reads devbox.yml into ``ProvisionConfig``.

Everything the run needs to know about its environment is explicit
configuration passed to the orchestrator at construction: where the
apt tree lives, whether to prompt, how long each kind of wait may
take, and the environment handed to package-manager commands.

Resolution order for each field:
    environment override  >  devbox.yml  >  default
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from devbox.core.errors import ConfigError

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "devbox.yml"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _default_env() -> dict[str, str]:
    return {
        "DEBIAN_FRONTEND": "noninteractive",
        "DEBCONF_NONINTERACTIVE_SEEN": "true",
    }


class ProvisionConfig(BaseModel):
    """Explicit run configuration.

    Paths are written as absolute system paths and resolved under
    ``root``, so a test tree or a chroot can stand in for ``/``.
    """

    model_config = ConfigDict(extra="forbid")

    root: Path = Path("/")

    # apt configuration tree
    os_release: str = "/etc/os-release"
    sources_list: str = "/etc/apt/sources.list"
    sources_dir: str = "/etc/apt/sources.list.d"
    preferences_dir: str = "/etc/apt/preferences.d"
    keyrings_dir: str = "/etc/apt/keyrings"
    instructions_dir: str = "/root"

    # behavior
    assume_yes: bool = False
    dry_run: bool = False
    unhold_held: bool = True

    # bounded waits, seconds
    command_timeout: float = Field(default=1800, gt=0)
    query_timeout: float = Field(default=30, gt=0)
    network_timeout: float = Field(default=60, gt=0)
    service_timeout: float = Field(default=60, gt=0)

    env: dict[str, str] = Field(default_factory=_default_env)
    variables: dict[str, str] = Field(default_factory=dict)

    def resolve(self, path: str | Path) -> Path:
        """Map an absolute system path into ``root``."""
        return self.root / str(path).lstrip("/")

    @property
    def os_release_path(self) -> Path:
        return self.resolve(self.os_release)

    @property
    def sources_list_path(self) -> Path:
        return self.resolve(self.sources_list)

    @property
    def sources_dir_path(self) -> Path:
        return self.resolve(self.sources_dir)

    @property
    def preferences_dir_path(self) -> Path:
        return self.resolve(self.preferences_dir)


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for devbox.yml starting from ``start_dir`` (cwd), walking up."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def _env_bool(name: str) -> bool | None:
    raw = os.environ.get(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _env_overrides() -> dict[str, object]:
    overrides: dict[str, object] = {}
    if root := os.environ.get("DEVBOX_ROOT"):
        overrides["root"] = root
    for field, var in (("assume_yes", "DEVBOX_ASSUME_YES"), ("dry_run", "DEVBOX_DRY_RUN")):
        value = _env_bool(var)
        if value is not None:
            overrides[field] = value
    return overrides


def _read_yaml(path: Path) -> dict:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The file may wrap everything under a "devbox" key or be flat
    return data.get("devbox", data) if "devbox" in data else data


def load_config(path: Path | None = None, *, search: bool = True) -> ProvisionConfig:
    """Load and validate run configuration.

    Args:
        path: Explicit devbox.yml. If None and ``search``, searches
            upward from cwd; with no file found the defaults apply.
        search: Whether to look for a file when ``path`` is None.

    Raises:
        ConfigError: the file is unreadable, not YAML, or invalid.
    """
    if path is None and search:
        path = find_config_file()

    data: dict = {}
    if path is not None:
        logger.debug("Loading config from %s", path)
        data = dict(_read_yaml(path))

    data.update(_env_overrides())

    try:
        config = ProvisionConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration{f' in {path}' if path else ''}: {e}") from e

    # Keep the noninteractive defaults unless the file overrides them
    config.env = {**_default_env(), **config.env}

    logger.debug("Config: root=%s dry_run=%s assume_yes=%s", config.root, config.dry_run, config.assume_yes)
    return config
