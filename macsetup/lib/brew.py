from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .command import CommandRunner

logger = logging.getLogger(__name__)

_EXPORT_RE = re.compile(r'^export\s+([A-Z_][A-Z0-9_]*)="?(.*?)"?;?$')
_EXPANSION_RE = re.compile(r"\$\{[^}]*\}")


def parse_shellenv(text: str) -> Tuple[List[str], Dict[str, str]]:
    """Split `brew shellenv` output into (path dirs to prepend, other exports)."""

    path_dirs: List[str] = []
    env: Dict[str, str] = {}
    for line in text.splitlines():
        m = _EXPORT_RE.match(line.strip())
        if not m:
            continue
        key, value = m.group(1), _EXPANSION_RE.sub("", m.group(2))
        if key == "PATH":
            for part in value.split(":"):
                if part and "$" not in part and part not in path_dirs:
                    path_dirs.append(part)
        elif "$" not in value:
            env[key] = value
    return path_dirs, env


@dataclass(frozen=True)
class Homebrew:
    runner: CommandRunner
    prefix: str = "/opt/homebrew"

    @property
    def brew_path(self) -> str:
        return f"{self.prefix}/bin/brew"

    def _brew(self) -> str:
        return self.runner.which("brew") or self.brew_path

    def is_available(self) -> bool:
        return self.runner.which("brew") is not None

    def is_installed(self, name: str, *, cask: bool = False) -> bool:
        kind = "--cask" if cask else "--formula"
        return self.runner.succeeds([self._brew(), "list", kind, name])

    def install(self, names: Sequence[str], *, cask: bool = False) -> None:
        if not names:
            return
        argv = [self._brew(), "install"]
        if cask:
            argv.append("--cask")
        self.runner.run([*argv, *names])

    def has_tap(self, tap: str) -> bool:
        r = self.runner.run([self._brew(), "tap"], check=False)
        return r.ok and tap in r.stdout.split()

    def tap(self, tap: str) -> None:
        self.runner.run([self._brew(), "tap", tap])

    def load_shellenv(self) -> None:
        """Make brew usable for the rest of this session (eval "$(brew shellenv)")."""
        r = self.runner.run([self._brew(), "shellenv"])
        path_dirs, env = parse_shellenv(r.stdout)
        self.runner.prepend_path(*path_dirs)
        for k, v in env.items():
            self.runner.set_env(k, v)

    def doctor(self) -> bool:
        r = self.runner.run([self._brew(), "doctor"], check=False)
        if not r.ok:
            logger.warning("brew doctor reported issues:\n%s", (r.stderr or r.stdout).strip())
        return r.ok
