"""
Service manager — enable and start systemd units.

``systemctl enable --now`` can hang waiting on a unit, so enabling
and starting are separate calls and the start gets its own deadline.
"""

from __future__ import annotations

import logging

from devbox.adapters.shell.command import CommandRunner

logger = logging.getLogger(__name__)


class ServiceManager:
    """Thin systemctl wrapper on top of a ``CommandRunner``."""

    def __init__(self, runner: CommandRunner, start_timeout: float = 30):
        self._runner = runner
        self._start_timeout = start_timeout

    def enable(self, unit: str, *, start: bool = True) -> str:
        """Enable ``unit`` at boot and optionally start it now.

        Raises:
            CommandError: systemctl failed.
            OperationTimeoutError: the start did not finish in time.
        """
        self._runner.run(["systemctl", "enable", unit], timeout=self._start_timeout, check=True)
        if not start:
            return f"{unit} enabled"
        self._runner.run(["systemctl", "start", unit], timeout=self._start_timeout, check=True)
        logger.info("%s enabled and started", unit)
        return f"{unit} enabled and started"

    def is_active(self, unit: str) -> bool:
        r = self._runner.run(
            ["systemctl", "is-active", "--quiet", unit],
            timeout=self._start_timeout,
            mutating=False,
        )
        return r.returncode == 0
