from __future__ import annotations

from typing import List

from ..context import ProvisionContext
from ..pipeline import Step


def _setting_step(ctx: ProvisionContext, key: str, value: str, fatal: bool) -> Step:
    return Step(
        name=f"git-config:{key}",
        check=lambda: ctx.git.config_get(key) == value,
        apply=lambda: ctx.git.config_set(key, value),
        fatal=fatal,
    )


def build(ctx: ProvisionContext) -> List[Step]:
    if not ctx.cfg.enabled("git"):
        return []
    fatal = ctx.cfg.fatal("git", False)
    return [_setting_step(ctx, k, v, fatal) for k, v in ctx.cfg.git_settings.items()]
