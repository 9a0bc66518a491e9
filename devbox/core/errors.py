"""
Error taxonomy — every failure the provisioning run can report.

Backends and the source registry raise these; the orchestrator
catches them at the step boundary and turns them into receipts.
Only ``PreconditionError`` stops a run before the first step.
"""

from __future__ import annotations

from collections.abc import Iterable


class ProvisionError(Exception):
    """Base class for all provisioning failures."""

    #: Short category name shown in reports.
    category = "error"


class PreconditionError(ProvisionError):
    """Unsupported platform or missing privilege. Fatal before step 0."""

    category = "precondition"


class TransientNetworkError(ProvisionError):
    """Index refresh, key download or repository fetch failed."""

    category = "network"


class _PackageError(ProvisionError):
    def __init__(self, message: str, packages: Iterable[str] = ()):
        super().__init__(message)
        self.packages: list[str] = list(packages)


class PackageNotFoundError(_PackageError):
    """One or more package names are unknown to the backend."""

    category = "not_found"


class PackageConflictError(_PackageError):
    """Install would violate a held or pinned constraint."""

    category = "conflict"


class OperationTimeoutError(ProvisionError):
    """A bounded wait expired. Treated as a failed action, never retried."""

    category = "timeout"

    def __init__(self, message: str, timeout: float | None = None):
        super().__init__(message)
        self.timeout = timeout


class ConfigWriteError(ProvisionError):
    """A repository, pin, keyring or artifact file could not be written."""

    category = "config_write"


class CommandError(ProvisionError):
    """A command exited non-zero for a reason we could not classify."""

    category = "command"

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class ConfigError(ProvisionError):
    """Configuration file is missing, unreadable or invalid."""

    category = "config"


class PlanError(ProvisionError):
    """Plan file is invalid or references unknown steps."""

    category = "plan"
