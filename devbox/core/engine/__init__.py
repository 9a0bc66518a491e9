"""Engine — the orchestration loop."""

from devbox.core.engine.orchestrator import Confirm, Orchestrator

__all__ = ["Confirm", "Orchestrator"]
