from __future__ import annotations

import logging
from typing import Callable, List

from ..context import ProvisionContext
from ..lib.defaults import Preference
from ..pipeline import Step

logger = logging.getLogger(__name__)


def _preference_step(ctx: ProvisionContext, pref: Preference, fatal: bool) -> Step:
    def apply() -> None:
        ctx.defaults.write(pref)
        ctx.changed_preferences.append(pref.label)

    return Step(
        name=f"defaults:{pref.label}",
        check=lambda: ctx.defaults.matches(pref),
        apply=apply,
        fatal=fatal,
    )


def _restart_apply(ctx: ProvisionContext, apps: List[str]) -> Callable[[], None]:
    def apply() -> None:
        logger.info("Preferences changed this run: %s", ", ".join(ctx.changed_preferences))
        for app in apps:
            # The app may not be running; that is not an error.
            ctx.runner.run(["killall", app], check=False)
        ctx.changed_preferences.clear()

    return apply


def build(ctx: ProvisionContext) -> List[Step]:
    if not ctx.cfg.enabled("macos_defaults"):
        return []

    fatal = ctx.cfg.fatal("macos_defaults", False)
    steps = [_preference_step(ctx, pref, fatal) for pref in ctx.cfg.preferences]

    apps = ctx.cfg.restart_apps
    if apps and steps:
        steps.append(
            Step(
                name="restart-apps",
                check=lambda: not ctx.changed_preferences,
                apply=_restart_apply(ctx, apps),
                fatal=False,
            )
        )
    return steps
