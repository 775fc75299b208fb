from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..context import ProvisionContext
from ..lib import shellrc
from ..lib.net import run_install_script
from ..logging_utils import progress
from ..pipeline import Step, StepKind

logger = logging.getLogger(__name__)


def build(ctx: ProvisionContext) -> List[Step]:
    cfg = ctx.cfg.section("homebrew")
    brew = ctx.brew
    install_url = str(cfg.get("install_url"))
    marker = str(cfg.get("shellenv_marker") or "brew shellenv")
    shellenv_line = f'eval "$({brew.brew_path} shellenv)"'
    zprofile = ctx.cfg.zprofile

    def installed() -> bool:
        return brew.is_available() or Path(brew.brew_path).exists()

    def install() -> None:
        env = None
        if cfg.get("noninteractive", True):
            # The unattended installer only uses `sudo -n`, so credentials must be cached first.
            # sudo prompts on the terminal itself, not through the captured pipes.
            progress.warning("Homebrew needs administrator rights; enter your password if asked")
            ctx.runner.run(["sudo", "-v"])
            env = {"NONINTERACTIVE": "1"}
        run_install_script(ctx.runner, install_url, shell="/bin/bash", env=env)
        brew.load_shellenv()
        if cfg.get("run_doctor", True):
            brew.doctor()

    def load_session() -> None:
        brew.load_shellenv()

    def add_to_zprofile() -> None:
        shellrc.append_lines(zprofile, [shellenv_line])

    return [
        Step(name="homebrew", check=installed, apply=install, fatal=True, kind=StepKind.INTERACTIVE),
        Step(name="homebrew-session", check=brew.is_available, apply=load_session, fatal=True),
        Step(
            name="homebrew-zprofile",
            check=lambda: shellrc.has_marker(zprofile, marker),
            apply=add_to_zprofile,
            fatal=False,
        ),
    ]
