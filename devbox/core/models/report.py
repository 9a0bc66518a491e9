"""
Run report — what happened to each step in this run.

Created fresh for every run and printed at the end. Never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from devbox.core.models.action import Receipt

StepStatus = Literal["ok", "warning", "failed"]


class RunState(str, Enum):
    """Orchestrator state machine."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class StepResult:
    """Outcome of one step."""

    name: str
    status: StepStatus = "ok"
    fatal: bool = False
    receipts: list[Receipt] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [f"{r.action}: {r.error}" for r in self.receipts if r.failed]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "fatal": self.fatal,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


@dataclass
class RunReport:
    """Per-step status for a single run."""

    state: RunState = RunState.NOT_STARTED
    steps: list[StepResult] = field(default_factory=list)
    abort_reason: str | None = None
    dry_run: bool = False

    @property
    def per_step_status(self) -> dict[str, StepStatus]:
        return {s.name: s.status for s in self.steps}

    @property
    def ok(self) -> int:
        return sum(1 for s in self.steps if s.status == "ok")

    @property
    def warnings(self) -> int:
        return sum(1 for s in self.steps if s.status == "warning")

    @property
    def failed(self) -> int:
        return sum(1 for s in self.steps if s.status == "failed")

    @property
    def has_warnings(self) -> bool:
        return self.warnings > 0 or self.failed > 0

    @property
    def completed(self) -> bool:
        return self.state == RunState.COMPLETED

    def record(self, result: StepResult) -> None:
        self.steps.append(result)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "abort_reason": self.abort_reason,
            "dry_run": self.dry_run,
            "per_step_status": self.per_step_status,
            "summary": {
                "ok": self.ok,
                "warning": self.warnings,
                "failed": self.failed,
            },
            "steps": [s.to_dict() for s in self.steps],
        }
