from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .command import CommandRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Git:
    runner: CommandRunner

    def clone(self, url: str, destination: str) -> None:
        # Cloning into an existing directory is not idempotent; callers guard on it.
        if Path(destination).exists():
            raise RuntimeError(f"Clone destination already exists: {destination}")
        Path(destination).parent.mkdir(parents=True, exist_ok=True)
        self.runner.run(["git", "clone", "--depth", "1", url, destination])

    def config_get(self, key: str) -> Optional[str]:
        r = self.runner.run(["git", "config", "--global", "--get", key], check=False)
        if not r.ok:
            return None
        return r.stdout.strip()

    def config_set(self, key: str, value: str) -> None:
        self.runner.run(["git", "config", "--global", key, value])
