from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..config import ZshPlugin
from ..context import ProvisionContext
from ..lib import shellrc
from ..lib.net import run_install_script
from ..pipeline import Step

logger = logging.getLogger(__name__)

ZSHRC_BLOCK = "oh-my-zsh"


def _home_relative(ctx: ProvisionContext, path: Path) -> str:
    try:
        return "$HOME/" + str(path.relative_to(ctx.cfg.home))
    except ValueError:
        return str(path)


def render_zshrc(ctx: ProvisionContext) -> str:
    settings = ctx.cfg.zshrc_settings
    zsh_dir = ctx.cfg.expand(ctx.cfg.section("zsh").get("dir") or "~/.oh-my-zsh")
    theme = str(settings.get("theme") or "robbyrussell")
    plugins = [str(p) for p in (settings.get("plugins") or ["git"])]
    lines = [
        f'export ZSH="{_home_relative(ctx, zsh_dir)}"',
        f'ZSH_THEME="{theme}"',
        "plugins=(",
        *[f"  {p}" for p in plugins],
        ")",
        "source $ZSH/oh-my-zsh.sh",
    ]
    return "\n".join(lines) + "\n"


def _plugin_step(ctx: ProvisionContext, plugin: ZshPlugin, custom_dir: Path) -> Step:
    dest = custom_dir / "plugins" / plugin.name
    return Step(
        name=f"zsh-plugin:{plugin.name}",
        check=dest.is_dir,
        apply=lambda: ctx.git.clone(plugin.url, str(dest)),
        fatal=False,
    )


def build(ctx: ProvisionContext) -> List[Step]:
    if not ctx.cfg.enabled("zsh"):
        return []

    cfg = ctx.cfg.section("zsh")
    zsh_dir = ctx.cfg.expand(cfg.get("dir") or "~/.oh-my-zsh")
    custom_dir = ctx.cfg.expand(cfg.get("custom_dir") or f"{zsh_dir}/custom")
    install_url = str(cfg.get("install_url"))
    zshrc = ctx.cfg.zshrc
    body = render_zshrc(ctx)
    takeover = bool(ctx.cfg.zshrc_settings.get("takeover", False))

    def install_oh_my_zsh() -> None:
        run_install_script(
            ctx.runner,
            install_url,
            shell="/bin/sh",
            args=["--unattended", "--keep-zshrc"],
            env={"ZSH": str(zsh_dir), "RUNZSH": "no", "CHSH": "no", "KEEP_ZSHRC": "yes"},
        )

    steps = [Step(name="oh-my-zsh", check=zsh_dir.is_dir, apply=install_oh_my_zsh, fatal=True)]
    steps.extend(_plugin_step(ctx, p, custom_dir) for p in ctx.cfg.zsh_plugins)
    steps.append(
        Step(
            name="zshrc",
            check=lambda: shellrc.has_block(zshrc, ZSHRC_BLOCK, body),
            apply=lambda: shellrc.replace_block(zshrc, ZSHRC_BLOCK, body, backups=ctx.backups, takeover=takeover),
            fatal=False,
        )
    )
    return steps
