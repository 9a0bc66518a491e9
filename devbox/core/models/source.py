"""
Repository source and pin models.

A ``RepoSource`` is one third-party repository: the trust key it is
signed with and the single entry line that declares it. A ``PinRule``
forces one release's package versions to win over another source.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class AddResult(str, Enum):
    """Outcome of adding a repository entry line."""

    ADDED = "added"
    ALREADY_PRESENT = "already_present"


class RemoveResult(str, Enum):
    """Outcome of removing a repository definition."""

    REMOVED = "removed"
    NOT_PRESENT = "not_present"


class WriteResult(str, Enum):
    """Outcome of an idempotent file write."""

    WRITTEN = "written"
    UNCHANGED = "unchanged"


class SigningKey(BaseModel):
    """Where a repository's trust key comes from and where it lands."""

    url: str
    keyring: str                    # absolute path, e.g. /etc/apt/keyrings/docker.gpg
    dearmor: bool = True            # pipe through ``gpg --dearmor``


class PinRule(BaseModel):
    """A preferences stanza forcing a release's versions to win.

    ``release_tag`` is either a bare codename (rendered as
    ``release n=<tag>``) or a full release expression such as
    ``a=stable``.
    """

    id: str
    package_patterns: list[str]
    release_tag: str
    priority: int = 1001
    per_package: bool = False       # one stanza per package instead of one combined
    comment: list[str] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def _id_is_filename(cls, v: str) -> str:
        if not v or "/" in v or v.startswith("."):
            raise ValueError(f"pin id must be a plain file name, got {v!r}")
        return v

    @field_validator("package_patterns")
    @classmethod
    def _has_patterns(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("pin needs at least one package pattern")
        return v


class RepoSource(BaseModel):
    """A third-party repository definition."""

    id: str                         # logical name: docker, nodesource, php-sury
    entry_line: str                 # the one-line ``deb ...`` definition
    signing_key: SigningKey | None = None
    pin: PinRule | None = None

    @field_validator("id")
    @classmethod
    def _id_is_filename(cls, v: str) -> str:
        if not v or "/" in v or v.startswith("."):
            raise ValueError(f"source id must be a plain file name, got {v!r}")
        return v

    @field_validator("entry_line")
    @classmethod
    def _single_line(cls, v: str) -> str:
        v = v.strip()
        if not v or "\n" in v:
            raise ValueError("entry_line must be a single non-empty line")
        return v

    @property
    def file_name(self) -> str:
        """Name of the dedicated file in the supplementary directory."""
        return f"{self.id}.list"


class ComponentResult(BaseModel):
    """Outcome of enabling a component on the primary sources file."""

    component: str
    lines_changed: int = 0
    removed_files: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.lines_changed > 0 or bool(self.removed_files)
