from __future__ import annotations

from typing import List

from ..context import ProvisionContext
from ..lib import shellrc
from ..lib.net import run_install_script
from ..pipeline import Step


def build(ctx: ProvisionContext) -> List[Step]:
    if not ctx.cfg.enabled("nvm"):
        return []

    cfg = ctx.cfg.section("nvm")
    nvm_dir = ctx.cfg.expand(cfg.get("dir") or "~/.nvm")
    install_url = str(cfg.get("install_url"))
    marker = str(cfg.get("marker") or "NVM_DIR")
    lines = [str(line) for line in (cfg.get("zshrc_lines") or [])]
    zshrc = ctx.cfg.zshrc

    def installed() -> bool:
        return (nvm_dir / "nvm.sh").is_file()

    def install() -> None:
        # The installer refuses an NVM_DIR that does not exist yet.
        nvm_dir.mkdir(parents=True, exist_ok=True)
        # PROFILE=/dev/null: the installer must not edit startup files, nvm-zshrc owns that.
        run_install_script(
            ctx.runner,
            install_url,
            shell="/bin/bash",
            env={"NVM_DIR": str(nvm_dir), "PROFILE": "/dev/null"},
        )

    steps = [Step(name="nvm", check=installed, apply=install, fatal=False)]
    if lines:
        steps.append(
            Step(
                name="nvm-zshrc",
                check=lambda: shellrc.has_marker(zshrc, marker),
                apply=lambda: shellrc.append_lines(zshrc, lines),
                fatal=False,
            )
        )
    return steps
