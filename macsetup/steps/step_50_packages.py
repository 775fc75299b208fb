from __future__ import annotations

import logging
from typing import List

from ..config import PackageGroup
from ..context import ProvisionContext
from ..pipeline import Step

logger = logging.getLogger(__name__)


def _group_steps(ctx: ProvisionContext, group: PackageGroup) -> List[Step]:
    brew = ctx.brew
    steps: List[Step] = []

    for tap in group.taps:
        steps.append(
            Step(
                name=f"brew-tap:{tap}",
                check=lambda tap=tap: brew.has_tap(tap),
                apply=lambda tap=tap: brew.tap(tap),
                fatal=group.fatal,
            )
        )
    for formula in group.formulae:
        steps.append(
            Step(
                name=f"brew:{formula}",
                check=lambda formula=formula: brew.is_installed(formula),
                apply=lambda formula=formula: brew.install([formula]),
                fatal=group.fatal,
            )
        )
    for cask in group.casks:
        steps.append(
            Step(
                name=f"brew-cask:{cask}",
                check=lambda cask=cask: brew.is_installed(cask, cask=True),
                apply=lambda cask=cask: brew.install([cask], cask=True),
                fatal=group.fatal,
            )
        )
    return steps


def build(ctx: ProvisionContext) -> List[Step]:
    steps: List[Step] = []
    for group in ctx.cfg.package_groups:
        if not group.enabled:
            logger.info("Package group %s disabled", group.name)
            continue
        steps.extend(_group_steps(ctx, group))
    return steps
