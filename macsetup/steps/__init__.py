from __future__ import annotations

from typing import Callable, List, Sequence

from ..config import ConfigError
from ..context import ProvisionContext
from ..pipeline import Step
from . import (
    step_10_xcode,
    step_20_homebrew,
    step_30_macos_defaults,
    step_40_git,
    step_50_packages,
    step_60_zsh,
    step_70_rust,
    step_80_nvm,
)

StepBuilder = Callable[[ProvisionContext], List[Step]]

BUILDERS: Sequence[StepBuilder] = (
    step_10_xcode.build,
    step_20_homebrew.build,
    step_30_macos_defaults.build,
    step_40_git.build,
    step_50_packages.build,
    step_60_zsh.build,
    step_70_rust.build,
    step_80_nvm.build,
)


def build_steps(ctx: ProvisionContext, builders: Sequence[StepBuilder] = BUILDERS) -> List[Step]:
    """Expand the configuration table into the ordered step list."""

    steps: List[Step] = []
    for builder in builders:
        steps.extend(builder(ctx))

    seen: set[str] = set()
    for s in steps:
        if s.name in seen:
            raise ConfigError(f"Duplicate step name {s.name!r} (listed twice in the config?)")
        seen.add(s.name)
    return steps


__all__ = ["BUILDERS", "StepBuilder", "build_steps"]
