"""
Plan loader — reads a plan (YAML file or mapping) into a ``StepGraph``.

A plan is::

    variables:              # optional defaults, overridable by config
      php_version: "8.3"
    steps:
      - name: php
        fatal: false
        actions:
          - kind: install
            packages: ["php{php_version}-cli"]

Every string in ``steps`` may use ``{var}`` placeholders. Values come
from, lowest priority first: built-ins (``codename``, ``release``,
``distro``, ``arch``, ``instructions_dir``), the plan's ``variables``,
then the caller's variables.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from devbox.core.data.default_plan import DEFAULT_PLAN
from devbox.core.errors import PlanError
from devbox.core.models.step import Step, StepGraph

logger = logging.getLogger(__name__)

_ARCH_MAP = {"x86_64": "amd64", "aarch64": "arm64", "armv7l": "armhf", "i686": "i386"}


def machine_arch() -> str:
    """Debian-style architecture name of this machine."""
    machine = platform.machine().lower()
    return _ARCH_MAP.get(machine, machine)


def builtin_variables(
    distro_id: str = "",
    codename: str = "",
    release: str = "",
    instructions_dir: str = "/root",
) -> dict[str, str]:
    """Variables every plan can use without declaring them."""
    return {
        "distro": distro_id,
        "codename": codename or distro_id,
        "release": release,
        "arch": machine_arch(),
        "instructions_dir": instructions_dir.rstrip("/") or "/",
    }


def render_template(template: str, variables: dict[str, Any]) -> str:
    """Substitute ``{var}`` placeholders with values.

    Simple string replacement — no Jinja, no escaping. Unknown
    placeholders and other braces are left as they are.
    """
    result = template
    for key, value in variables.items():
        result = result.replace(f"{{{key}}}", str(value))
    return result


def _render(obj: Any, variables: dict[str, Any]) -> Any:
    if isinstance(obj, str):
        return render_template(obj, variables)
    if isinstance(obj, list):
        return [_render(v, variables) for v in obj]
    if isinstance(obj, dict):
        return {k: _render(v, variables) for k, v in obj.items()}
    return obj


def read_plan_file(path: Path) -> dict[str, Any]:
    """Read a plan YAML file into a mapping.

    Raises:
        PlanError: missing, unreadable or not a mapping.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise PlanError(f"Plan file not found: {path}") from e
    except OSError as e:
        raise PlanError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise PlanError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise PlanError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def build_graph(
    data: dict[str, Any],
    *,
    builtins: dict[str, str] | None = None,
    variables: dict[str, str] | None = None,
) -> StepGraph:
    """Render and validate plan data into a ``StepGraph``.

    Raises:
        PlanError: bad structure, invalid action or duplicate step name.
    """
    steps = data.get("steps")
    if not isinstance(steps, list) or not steps:
        raise PlanError("Plan must define a non-empty 'steps' list")

    plan_vars = data.get("variables") or {}
    if not isinstance(plan_vars, dict):
        raise PlanError("Plan 'variables' must be a mapping")

    base = dict(builtins or {})
    # plan defaults may themselves reference built-ins
    merged = {
        **base,
        **{k: render_template(str(v), base) for k, v in plan_vars.items()},
        **(variables or {}),
    }

    graph = StepGraph()
    for i, raw_step in enumerate(steps):
        if not isinstance(raw_step, dict):
            raise PlanError(f"Step #{i + 1} is not a mapping")
        try:
            step = Step.model_validate(_render(raw_step, merged))
        except ValidationError as e:
            name = raw_step.get("name", f"#{i + 1}")
            raise PlanError(f"Invalid step {name!r}: {e}") from e
        graph.add(step)

    logger.debug("Plan loaded: %d steps", len(graph))
    return graph


def load_plan(
    source: Path | dict[str, Any] | None = None,
    *,
    builtins: dict[str, str] | None = None,
    variables: dict[str, str] | None = None,
) -> StepGraph:
    """Load a plan into a ``StepGraph``.

    Args:
        source: Plan file, plan mapping, or None for the built-in
            workstation plan.
        builtins: Detected-system variables (see ``builtin_variables``).
        variables: User overrides; win over everything else.
    """
    if source is None:
        data = DEFAULT_PLAN
        logger.debug("Using built-in workstation plan")
    elif isinstance(source, dict):
        data = source
    else:
        logger.debug("Loading plan from %s", source)
        data = read_plan_file(source)

    return build_graph(data, builtins=builtins, variables=variables)
