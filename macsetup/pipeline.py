from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Tuple

from .logging_utils import progress

logger = logging.getLogger(__name__)


class StepKind(enum.Enum):
    ACTION = "action"
    # Blocks on an out-of-process installer the operator has to finish.
    INTERACTIVE = "interactive"


class StepStatus(enum.Enum):
    ALREADY_SATISFIED = "already_satisfied"
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Step:
    """A single idempotent step.

    check must be side-effect free; apply signals failure by raising.
    """

    name: str
    check: Callable[[], bool]
    apply: Callable[[], None]
    fatal: bool = True
    verify: bool = True
    kind: StepKind = StepKind.ACTION
    first_entry_only: bool = False


@dataclass(frozen=True)
class StepResult:
    name: str
    status: StepStatus
    detail: str = ""
    fatal: bool = True
    duration_s: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "detail": self.detail,
            "fatal": self.fatal,
            "duration_s": round(self.duration_s, 3),
        }


@dataclass(frozen=True)
class RunReport:
    results: Tuple[StepResult, ...]

    @property
    def ok(self) -> bool:
        return not any(r.status is StepStatus.FAILED and r.fatal for r in self.results)

    def by_status(self, status: StepStatus) -> List[StepResult]:
        return [r for r in self.results if r.status is status]

    def failed(self) -> List[StepResult]:
        return self.by_status(StepStatus.FAILED)

    def statuses(self) -> List[StepStatus]:
        return [r.status for r in self.results]

    def to_dict(self) -> Dict[str, Any]:
        counts: Dict[str, int] = {}
        for r in self.results:
            counts[r.status.value] = counts.get(r.status.value, 0) + 1
        return {
            "ok": self.ok,
            "counts": counts,
            "steps": [r.to_dict() for r in self.results],
        }


def _describe(e: BaseException) -> str:
    msg = str(e).strip()
    return f"{type(e).__name__}: {msg}" if msg else type(e).__name__


class Provisioner:
    """Runs steps in order with check-before-apply idempotency."""

    def __init__(self, *, verify: bool = True, dry_run: bool = False, reentered: bool = False) -> None:
        self.verify = verify
        self.dry_run = dry_run
        self.reentered = reentered

    def run(self, steps: Sequence[Step]) -> RunReport:
        names = [s.name for s in steps]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate step names: {', '.join(dupes)}")

        results: List[StepResult] = []
        halted_by: str | None = None

        for step in steps:
            if halted_by is not None:
                results.append(
                    StepResult(step.name, StepStatus.SKIPPED, f"not run: {halted_by} failed", step.fatal)
                )
                continue

            result = self._run_step(step)
            results.append(result)

            if result.status is StepStatus.FAILED and step.fatal:
                halted_by = step.name
                progress.error("Stopping: %s is required", step.name)

        return RunReport(results=tuple(results))

    def _run_step(self, step: Step) -> StepResult:
        started = time.monotonic()

        def done(status: StepStatus, detail: str = "") -> StepResult:
            return StepResult(step.name, status, detail, step.fatal, time.monotonic() - started)

        progress.step("Checking %s...", step.name)
        try:
            satisfied = step.check()
        except Exception as e:
            logger.exception("Check failed for %s", step.name)
            progress.error("%s: check failed: %s", step.name, _describe(e))
            return done(StepStatus.FAILED, f"check raised {_describe(e)}")

        if satisfied:
            progress.success("%s already satisfied", step.name)
            return done(StepStatus.ALREADY_SATISFIED)

        if self.reentered and step.first_entry_only:
            progress.warning("%s is not satisfied; skipped (already re-entered)", step.name)
            return done(StepStatus.SKIPPED, "already re-entered")

        if self.dry_run:
            progress.warning("%s would be applied (dry run)", step.name)
            return done(StepStatus.SKIPPED, "dry run: would apply")

        if step.kind is StepKind.INTERACTIVE:
            progress.warning("%s needs operator input", step.name)
        else:
            progress.step("Applying %s...", step.name)

        try:
            step.apply()
        except Exception as e:
            logger.exception("Apply failed for %s", step.name)
            progress.error("%s failed: %s", step.name, _describe(e))
            return done(StepStatus.FAILED, _describe(e))

        if self.verify and step.verify:
            try:
                converged = step.check()
            except Exception as e:
                logger.exception("Re-check failed for %s", step.name)
                converged = False
                progress.error("%s: re-check raised %s", step.name, _describe(e))
            if not converged:
                progress.error("%s: apply succeeded but check still fails", step.name)
                return done(StepStatus.FAILED, "apply succeeded but check still fails")

        progress.success("%s applied", step.name)
        return done(StepStatus.APPLIED)
