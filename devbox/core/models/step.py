"""
Step model — one named unit of provisioning work.

Steps are declared up front and run once per run, in declaration
order. Later steps may rely on the side effects of earlier ones.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from pydantic import BaseModel, Field

from devbox.core.errors import PlanError
from devbox.core.models.action import Action


class Step(BaseModel):
    """A named, ordered list of backend actions."""

    name: str
    description: str = ""
    fatal: bool = False
    actions: list[Action] = Field(default_factory=list)


class StepGraph:
    """Ordered, name-unique sequence of steps.

    There is no explicit dependency graph: order is the dependency.
    """

    def __init__(self, steps: Iterable[Step] = ()):
        self._steps: list[Step] = []
        for step in steps:
            self.add(step)

    def add(self, step: Step) -> None:
        if any(s.name == step.name for s in self._steps):
            raise PlanError(f"Duplicate step name: {step.name!r}")
        self._steps.append(step)

    def get(self, name: str) -> Step:
        for step in self._steps:
            if step.name == name:
                return step
        raise PlanError(f"Unknown step: {name!r}")

    def names(self) -> list[str]:
        return [s.name for s in self._steps]

    def select(self, names: Iterable[str]) -> StepGraph:
        """Sub-graph with only the named steps, in declaration order."""
        wanted = list(names)
        unknown = [n for n in wanted if n not in self.names()]
        if unknown:
            raise PlanError(f"Unknown step(s): {', '.join(unknown)}")
        return StepGraph(s for s in self._steps if s.name in wanted)

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return f"<StepGraph steps={self.names()!r}>"
