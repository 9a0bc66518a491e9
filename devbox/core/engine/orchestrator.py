"""
Orchestrator — runs a step graph and produces the run report.

State machine per run:

    NOT_STARTED → RUNNING(step i) → COMPLETED | ABORTED

Preconditions are checked once before the first step; their failure
aborts with an empty report. Every other error is caught at the
action boundary and turned into a failed receipt, so the run gets as
far as it can. Cancellation is observed between steps only; an
in-flight backend call always finishes or times out.

Flow:
    preconditions → for each step → for each action → dispatch → receipt → step status
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from devbox.adapters.base import InstallOptions, PackageBackend
from devbox.adapters.shell.command import CommandRunner
from devbox.adapters.shell.filesystem import FileWriter
from devbox.adapters.shell.service import ServiceManager
from devbox.core.config.loader import ProvisionConfig
from devbox.core.errors import ConfigWriteError, PreconditionError, ProvisionError
from devbox.core.models.action import MUTATING_BACKEND_KINDS, Action, Receipt
from devbox.core.models.report import RunReport, RunState, StepResult
from devbox.core.models.step import Step, StepGraph
from devbox.core.services.sources.registry import SourceRegistry

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]


def _never(prompt: str) -> bool:
    return False


class Orchestrator:
    """Run steps in order against one backend.

    Args:
        config: Run configuration.
        backend: The package backend selected for this machine.
        sources: Owner of all repository and pin file writes.
        runner: Runs ``command`` actions.
        services: Enables ``service_enable`` units.
        files: Writes ``file_write`` artifacts.
        confirm: ``prompt -> bool`` asked before releasing held
            packages; not consulted when ``config.assume_yes``.
        cancel: Set from outside (e.g. SIGINT) to stop at the next
            step boundary.
        release_tag: Local release codename used for foreign-release
            detection (``bookworm``).
    """

    def __init__(
        self,
        config: ProvisionConfig,
        backend: PackageBackend,
        sources: SourceRegistry,
        *,
        runner: CommandRunner,
        services: ServiceManager | None = None,
        files: FileWriter | None = None,
        confirm: Confirm | None = None,
        cancel: threading.Event | None = None,
        release_tag: str = "",
    ):
        self.config = config
        self.backend = backend
        self.sources = sources
        self.runner = runner
        self.services = services or ServiceManager(runner, start_timeout=config.service_timeout)
        self.files = files or FileWriter(dry_run=config.dry_run)
        self.confirm = confirm or _never
        self.cancel = cancel or threading.Event()
        self.release_tag = release_tag

        self.state = RunState.NOT_STARTED
        self.step_index: int | None = None

    @classmethod
    def from_config(
        cls,
        config: ProvisionConfig,
        backend: PackageBackend,
        *,
        runner: CommandRunner | None = None,
        confirm: Confirm | None = None,
        cancel: threading.Event | None = None,
        release_tag: str = "",
        offline: bool = False,
    ) -> Orchestrator:
        """Wire every collaborator from configuration."""
        runner = runner or CommandRunner(
            default_timeout=config.command_timeout,
            env=config.env,
            dry_run=config.dry_run,
        )
        return cls(
            config,
            backend,
            SourceRegistry.from_config(config, runner, offline=offline),
            runner=runner,
            confirm=confirm,
            cancel=cancel,
            release_tag=release_tag,
        )

    # ── run ─────────────────────────────────────────────────────

    def run(
        self,
        graph: StepGraph,
        preconditions: Callable[[], object] | None = None,
    ) -> RunReport:
        """Execute every step of ``graph`` in declaration order.

        Never raises for step failures: inspect the report.
        """
        report = RunReport(dry_run=self.config.dry_run)

        if preconditions is not None:
            try:
                preconditions()
            except PreconditionError as e:
                logger.error("Precondition failed: %s", e)
                self.state = RunState.ABORTED
                report.state = self.state
                report.abort_reason = str(e)
                return report

        self.state = RunState.RUNNING
        report.state = self.state
        logger.info(
            "Running %d step(s) on %s%s",
            len(graph), self.backend.name, " [dry-run]" if self.config.dry_run else "",
        )

        for i, step in enumerate(graph):
            if self.cancel.is_set():
                logger.warning("Cancelled before step %r", step.name)
                self.state = RunState.ABORTED
                report.abort_reason = "cancelled"
                break

            self.step_index = i
            result = self.run_step(step)
            report.record(result)

            if result.status == "failed" and step.fatal:
                logger.error("Fatal step %r failed; aborting run", step.name)
                self.state = RunState.ABORTED
                report.abort_reason = f"fatal step {step.name!r} failed"
                break
        else:
            self.state = RunState.COMPLETED

        report.state = self.state
        logger.info(
            "Run %s: %d ok, %d warning, %d failed",
            self.state.value, report.ok, report.warnings, report.failed,
        )
        return report

    def run_step(self, step: Step) -> StepResult:
        """Run one step's actions and decide its status.

        A failed optional action only warns. Any other failure skips
        the rest of the step; the step is ``failed`` when it is fatal
        or the failure was a configuration write, ``warning`` otherwise.
        """
        logger.info("── %s ──", step.description or step.name)
        result = StepResult(name=step.name, fatal=step.fatal)
        halted_by: Receipt | None = None

        for action in step.actions:
            if halted_by is not None:
                result.receipts.append(
                    Receipt.skip(action, f"not run after failure of: {halted_by.action}")
                )
                continue

            receipt = self.execute(action)
            result.receipts.append(receipt)

            if receipt.failed and (
                not action.optional or receipt.error_category == ConfigWriteError.category
            ):
                halted_by = receipt

        failures = [r for r in result.receipts if r.failed]
        if not failures:
            result.status = "ok"
        elif halted_by is not None and (
            step.fatal or halted_by.error_category == ConfigWriteError.category
        ):
            result.status = "failed"
        else:
            result.status = "warning"

        if result.status != "ok":
            logger.warning("Step %r finished with status %s", step.name, result.status)
        return result

    # ── actions ─────────────────────────────────────────────────

    def execute(self, action: Action) -> Receipt:
        """Execute one action. Returns a receipt, never raises."""
        if not action.applies_to(self.backend.name):
            return Receipt.skip(action, f"not applicable to {self.backend.name}")

        if self.config.dry_run and action.kind in MUTATING_BACKEND_KINDS:
            logger.info("[dry-run] would %s", action.display)
            return Receipt.skip(action, "dry-run", metadata={"dry_run": True})

        start = time.monotonic()
        try:
            receipt = self._dispatch(action)
        except ProvisionError as e:
            receipt = Receipt.failure(
                action,
                str(e),
                category=e.category,
                metadata={"packages": getattr(e, "packages", [])},
            )
        except Exception as e:
            logger.exception("Unexpected error in %s", action.display)
            receipt = Receipt.failure(action, f"Unexpected error: {e}", category="internal")

        receipt.duration_ms = int((time.monotonic() - start) * 1000)

        if receipt.ok:
            logger.info("✓ %s", action.display)
        elif receipt.failed:
            log = logger.warning if action.optional else logger.error
            log("✗ %s: %s", action.display, receipt.error)
        else:
            logger.info("⊘ %s (%s)", action.display, receipt.output)
        return receipt

    def _dispatch(self, action: Action) -> Receipt:
        kind = action.kind

        if kind == "install":
            return self._install(action)
        elif kind == "refresh":
            return Receipt.success(action, self.backend.refresh())
        elif kind == "upgrade":
            return Receipt.success(action, self.backend.upgrade())
        elif kind == "repair":
            return Receipt.success(action, self.backend.repair())
        elif kind == "add_architecture":
            return Receipt.success(action, self.backend.add_architecture(action.architecture))
        elif kind == "unhold_held":
            return self._unhold_held(action)
        elif kind == "repo_add":
            backend = None if self.config.dry_run else self.backend
            added = self.sources.ensure_repo(action.source, backend)
            return Receipt.success(action, added.value, metadata={"result": added.value})
        elif kind == "repo_remove":
            removed = self.sources.remove_repo(action.source)
            return Receipt.success(action, removed.value, metadata={"result": removed.value})
        elif kind == "pin":
            written = self.sources.apply_pin(action.pin)
            return Receipt.success(action, written.value, metadata={"result": written.value})
        elif kind == "pin_foreign":
            return self._pin_foreign(action)
        elif kind == "enable_component":
            result = self.sources.enable_foreign_release_component(action.component)
            return Receipt.success(
                action,
                f"{result.lines_changed} line(s) changed",
                metadata=result.model_dump(),
            )
        elif kind == "deduplicate":
            removed = self.sources.deduplicate_all()
            return Receipt.success(
                action, f"{removed} duplicate line(s) removed", metadata={"removed": removed},
            )
        elif kind == "service_enable":
            return Receipt.success(action, self.services.enable(action.service, start=action.start))
        elif kind == "file_write":
            path = self.config.resolve(action.path)
            written = self.files.write(path, action.content, mode=action.mode)
            return Receipt.success(
                action, f"{path}: {written.value}", metadata={"path": str(path), "result": written.value},
            )
        elif kind == "command":
            r = self.runner.run(action.argv, timeout=action.timeout, check=True)
            return Receipt.success(action, r.stdout.strip()[-500:])
        else:
            return Receipt.failure(action, f"Unknown action kind: {kind}", category="plan")

    def _install(self, action: Action) -> Receipt:
        if action.only_if_foreign:
            foreign = self.backend.foreign_release_packages(self.release_tag)
            hits = sorted(set(action.only_if_foreign) & foreign)
            if not hits:
                return Receipt.skip(action, "no foreign-release packages among: " + ", ".join(action.only_if_foreign))
            logger.warning("Foreign-release package(s) found: %s", ", ".join(hits))

        options = InstallOptions(
            no_recommends=action.no_recommends,
            target_release=action.target_release,
        )
        output = self.backend.install(action.packages, action.allow_downgrade, options)
        return Receipt.success(action, output, metadata={"packages": list(action.packages)})

    def _unhold_held(self, action: Action) -> Receipt:
        held = sorted(self.backend.held_packages())
        if not held:
            return Receipt.success(action, "no held packages", metadata={"held": []})

        names = ", ".join(held)
        logger.warning("Held packages may cause conflicts: %s", names)
        if not self.config.unhold_held:
            return Receipt.skip(action, "unholding disabled", metadata={"held": held})
        if not self.config.assume_yes and not self.confirm(
            f"Unhold {len(held)} held package(s) ({names}) so they can be upgraded?"
        ):
            logger.warning("Held packages left as-is; conflicts may occur later")
            return Receipt.skip(action, "declined", metadata={"held": held})
        if self.config.dry_run:
            return Receipt.skip(action, "dry-run", metadata={"held": held, "dry_run": True})

        return Receipt.success(action, self.backend.unhold(held), metadata={"held": held})

    def _pin_foreign(self, action: Action) -> Receipt:
        foreign = self.backend.foreign_release_packages(action.release_tag)
        written = self.sources.apply_foreign_pin(foreign, action.release_tag)
        if written is None:
            return Receipt.success(action, "no foreign-release packages", metadata={"packages": []})
        logger.warning(
            "Packages from outside %s pinned back (review %s): %s",
            action.release_tag, self.sources.preferences_dir, ", ".join(sorted(foreign)),
        )
        return Receipt.success(
            action,
            written.value,
            metadata={"packages": sorted(foreign), "result": written.value},
        )
