from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .config import SetupConfig
from .lib.brew import Homebrew
from .lib.command import CommandRunner
from .lib.defaults import Defaults
from .lib.git import Git
from .lib.shellrc import BackupTracker


@dataclass
class ProvisionContext:
    """Collaborators and per-run bookkeeping shared by the step builders."""

    cfg: SetupConfig
    runner: CommandRunner
    brew: Homebrew
    git: Git
    defaults: Defaults
    backups: BackupTracker
    # Preferences written during this run; drives the app restart step.
    changed_preferences: List[str] = field(default_factory=list)

    @classmethod
    def create(cls, cfg: SetupConfig, runner: Optional[CommandRunner] = None) -> "ProvisionContext":
        r = runner if runner is not None else CommandRunner(timeout_s=cfg.command_timeout_s)
        return cls(
            cfg=cfg,
            runner=r,
            brew=Homebrew(runner=r, prefix=cfg.brew_prefix),
            git=Git(runner=r),
            defaults=Defaults(runner=r),
            backups=BackupTracker(enabled=bool(cfg.zshrc_settings.get("backup", True))),
        )
