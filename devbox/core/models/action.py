"""
Action and Receipt models — the execution contract.

Actions are the backend operations a step asks for. Receipts are
what came back. The orchestrator turns every raised error into a
failed receipt, so a report is always complete.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from devbox.core.models.source import PinRule, RepoSource


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


ActionKind = Literal[
    "install",
    "refresh",
    "upgrade",
    "repair",
    "add_architecture",
    "unhold_held",
    "repo_add",
    "repo_remove",
    "pin",
    "pin_foreign",
    "enable_component",
    "deduplicate",
    "service_enable",
    "file_write",
    "command",
]

# Actions that change package state through the backend or a command.
MUTATING_BACKEND_KINDS = frozenset({
    "install",
    "refresh",
    "upgrade",
    "repair",
    "add_architecture",
    "service_enable",
    "command",
})

# kind -> fields that must be set
_REQUIRED: dict[str, tuple[str, ...]] = {
    "install": ("packages",),
    "add_architecture": ("architecture",),
    "repo_add": ("source",),
    "repo_remove": ("source",),
    "pin": ("pin",),
    "pin_foreign": ("release_tag",),
    "enable_component": ("component",),
    "service_enable": ("service",),
    "file_write": ("path", "content"),
    "command": ("argv",),
}


class Action(BaseModel):
    """One backend operation inside a step."""

    kind: ActionKind
    label: str = ""
    backends: list[str] = Field(default_factory=list)   # empty = every backend
    optional: bool = False          # failure warns but the step continues

    # install
    packages: list[str] = Field(default_factory=list)
    allow_downgrade: bool = False
    no_recommends: bool = True
    target_release: str | None = None
    only_if_foreign: list[str] = Field(default_factory=list)

    # sources / pins
    source: RepoSource | None = None
    pin: PinRule | None = None
    component: str | None = None
    release_tag: str | None = None   # pin_foreign: release to pin back to

    # add_architecture
    architecture: str | None = None

    # service_enable
    service: str | None = None
    start: bool = True

    # file_write
    path: str | None = None
    content: str | None = None
    mode: int = 0o644

    # command
    argv: list[str] = Field(default_factory=list)
    timeout: float | None = None

    @model_validator(mode="after")
    def _check_required(self) -> Action:
        missing = [f for f in _REQUIRED.get(self.kind, ()) if not getattr(self, f)]
        if missing:
            raise ValueError(
                f"action '{self.kind}' requires: {', '.join(missing)}"
            )
        return self

    @property
    def display(self) -> str:
        """Label for logs and reports."""
        if self.label:
            return self.label
        if self.kind == "install":
            head = " ".join(self.packages[:3])
            more = f" (+{len(self.packages) - 3})" if len(self.packages) > 3 else ""
            return f"install {head}{more}"
        if self.source is not None:
            return f"{self.kind} {self.source.id}"
        if self.pin is not None:
            return f"pin {self.pin.id}"
        if self.service:
            return f"enable {self.service}"
        if self.path:
            return f"write {self.path}"
        if self.argv:
            return " ".join(self.argv)
        return self.kind

    def applies_to(self, backend_name: str) -> bool:
        """Whether this action should run on the given backend."""
        return not self.backends or backend_name in self.backends


class Receipt(BaseModel):
    """Result of one action. Failures are captured here, never raised."""

    action: str                     # Action.display
    kind: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    error_category: str | None = None
    optional: bool = False

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, action: Action, output: str = "", **kwargs: Any) -> Receipt:
        """Create a success receipt."""
        return cls(action=action.display, kind=action.kind, status="ok", output=output, **kwargs)

    @classmethod
    def failure(
        cls,
        action: Action,
        error: str,
        category: str | None = None,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            action=action.display,
            kind=action.kind,
            status="failed",
            error=error,
            error_category=category,
            optional=action.optional,
            **kwargs,
        )

    @classmethod
    def skip(cls, action: Action, reason: str = "", **kwargs: Any) -> Receipt:
        """Create a skip receipt."""
        return cls(action=action.display, kind=action.kind, status="skipped", output=reason, **kwargs)
