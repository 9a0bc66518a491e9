"""
Domain models — Pydantic types for the provisioner.

All models are re-exported here for convenient access:

    from devbox.core.models import Action, Receipt, Step, RepoSource, RunReport
"""

from devbox.core.models.action import Action, Receipt
from devbox.core.models.report import RunReport, RunState, StepResult
from devbox.core.models.source import (
    AddResult,
    ComponentResult,
    PinRule,
    RemoveResult,
    RepoSource,
    SigningKey,
    WriteResult,
)
from devbox.core.models.step import Step, StepGraph

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # report.py
    "RunReport",
    "RunState",
    "StepResult",
    # source.py
    "AddResult",
    "ComponentResult",
    "PinRule",
    "RemoveResult",
    "RepoSource",
    "SigningKey",
    "WriteResult",
    # step.py
    "Step",
    "StepGraph",
]
