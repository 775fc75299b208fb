from __future__ import annotations

import logging
from typing import List

from ..context import ProvisionContext
from ..lib.prompt import wait_for_confirmation
from ..logging_utils import progress
from ..pipeline import Step, StepKind

logger = logging.getLogger(__name__)


def build(ctx: ProvisionContext) -> List[Step]:
    if not ctx.cfg.enabled("xcode"):
        return []

    def check() -> bool:
        return ctx.runner.succeeds(["xcode-select", "-p"])

    def apply() -> None:
        # Opens a GUI installer; the command returns immediately.
        ctx.runner.run(["xcode-select", "--install"])
        progress.warning("Complete the Command Line Tools installer, then press Enter to continue...")
        wait_for_confirmation(timeout_s=ctx.cfg.confirmation_timeout_s)

    return [
        Step(
            name="xcode-clt",
            check=check,
            apply=apply,
            fatal=ctx.cfg.fatal("xcode", True),
            kind=StepKind.INTERACTIVE,
            first_entry_only=True,
        )
    ]
