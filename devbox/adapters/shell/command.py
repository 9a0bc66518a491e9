"""
Shell command runner — the single place subprocesses are started.

Every package-manager, gpg and systemctl call goes through
``CommandRunner.run``. Each call is a bounded wait: when the deadline
passes the child is killed and ``OperationTimeoutError`` is raised.
Nothing is retried here.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from devbox.core.errors import CommandError, OperationTimeoutError

logger = logging.getLogger(__name__)

# stderr tail kept on the result, enough for error classification.
# stdout is kept whole; query commands parse it.
_OUTPUT_TAIL = 4000


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str
    duration_ms: int = 0
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


class CommandRunner:
    """Run commands with a deadline, shared environment and dry-run.

    Args:
        default_timeout: Seconds before a call is abandoned.
        env: Extra environment merged over ``os.environ``
            (e.g. ``DEBIAN_FRONTEND=noninteractive``).
        dry_run: Log mutating commands instead of running them.
            Read-only queries (``mutating=False``) still run.
    """

    def __init__(
        self,
        default_timeout: float = 600,
        env: Mapping[str, str] | None = None,
        dry_run: bool = False,
    ):
        self.default_timeout = default_timeout
        self.env = dict(env or {})
        self.dry_run = dry_run

    def run(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        check: bool = False,
        mutating: bool = True,
        input_text: str | None = None,
        cwd: str | None = None,
    ) -> CommandResult:
        """Run ``argv`` and return its result.

        Raises:
            OperationTimeoutError: the deadline passed.
            CommandError: the binary is missing, or ``check`` and exit != 0.
        """
        argv_list = list(argv)
        limit = self.default_timeout if timeout is None else timeout

        if self.dry_run and mutating:
            logger.info("[dry-run] %s", format_argv(argv_list))
            return CommandResult(argv=argv_list, returncode=0, stdout="", stderr="", dry_run=True)

        logger.debug("CMD %s (timeout=%ss)", format_argv(argv_list), limit)
        start = time.monotonic()
        try:
            p = subprocess.run(
                argv_list,
                input=input_text,
                capture_output=True,
                text=True,
                timeout=limit,
                cwd=cwd,
                env={**os.environ, **self.env},
            )
        except subprocess.TimeoutExpired as e:
            raise OperationTimeoutError(
                f"Timed out after {limit}s: {format_argv(argv_list)}", timeout=limit,
            ) from e
        except FileNotFoundError as e:
            raise CommandError(f"Command not found: {argv_list[0]}") from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stderr = p.stderr[-_OUTPUT_TAIL:] if p.stderr else ""

        if stderr:
            logger.debug("STDERR %s", stderr.strip())

        result = CommandResult(
            argv=argv_list,
            returncode=p.returncode,
            stdout=p.stdout or "",
            stderr=stderr,
            duration_ms=elapsed_ms,
        )

        if check and p.returncode != 0:
            raise CommandError(
                f"Command failed (exit {p.returncode}): {format_argv(argv_list)}",
                returncode=p.returncode,
                stderr=stderr or (p.stdout or "")[-_OUTPUT_TAIL:],
            )
        return result
