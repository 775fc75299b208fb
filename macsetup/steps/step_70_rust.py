from __future__ import annotations

import logging
from typing import List

from ..context import ProvisionContext
from ..lib import shellrc
from ..lib.net import run_install_script
from ..pipeline import Step

logger = logging.getLogger(__name__)


def build(ctx: ProvisionContext) -> List[Step]:
    if not ctx.cfg.enabled("rust"):
        return []

    cfg = ctx.cfg.section("rust")
    cargo_bin = ctx.cfg.expand(cfg.get("cargo_home") or "~/.cargo") / "bin"
    toolchain = str(cfg.get("toolchain") or "stable")
    components = [str(c) for c in (cfg.get("components") or [])]
    install_url = str(cfg.get("install_url") or "https://sh.rustup.rs")
    rustup = cargo_bin / "rustup"
    zprofile = ctx.cfg.zprofile
    # The installer runs with --no-modify-path; new shells get cargo from this line.
    path_line = f'export PATH="{cargo_bin}:$PATH"'

    def install() -> None:
        run_install_script(
            ctx.runner,
            install_url,
            shell="/bin/sh",
            args=["-y", "--no-modify-path", "--default-toolchain", "none"],
        )

    def on_session_path() -> bool:
        return ctx.runner.which("rustup") is not None

    def default_is_set() -> bool:
        r = ctx.runner.run(["rustup", "default"], check=False)
        return r.ok and r.stdout.strip().startswith(toolchain)

    def installed_components() -> List[str]:
        r = ctx.runner.run(["rustup", "component", "list", "--installed"], check=False)
        return r.stdout.split() if r.ok else []

    def component_step(name: str) -> Step:
        return Step(
            name=f"rust-component:{name}",
            check=lambda: any(c == name or c.startswith(f"{name}-") for c in installed_components()),
            apply=lambda: ctx.runner.run(["rustup", "component", "add", name]),
            fatal=False,
        )

    steps = [
        Step(name="rustup", check=rustup.exists, apply=install, fatal=True),
        Step(
            name="rust-session",
            check=on_session_path,
            apply=lambda: ctx.runner.prepend_path(str(cargo_bin)),
            fatal=True,
        ),
        Step(
            name="rust-zprofile",
            check=lambda: shellrc.has_marker(zprofile, str(cargo_bin)),
            apply=lambda: shellrc.append_lines(zprofile, [path_line]),
            fatal=False,
        ),
        Step(
            name=f"rust-default:{toolchain}",
            check=default_is_set,
            apply=lambda: ctx.runner.run(["rustup", "default", toolchain]),
            fatal=False,
        ),
    ]
    steps.extend(component_step(c) for c in components)
    return steps
