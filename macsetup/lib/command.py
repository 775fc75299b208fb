from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 1800.0


class CommandError(RuntimeError):
    pass


class CommandTimeout(CommandError):
    pass


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def _tail(text: str, lines: int = 15) -> str:
    return "\n".join((text or "").strip().splitlines()[-lines:])


@dataclass
class CommandRunner:
    """Runs external commands for the current provisioning session.

    The session keeps PATH additions and env overrides so tools installed
    mid-run (brew, rustup) are reachable by later steps without a new shell.
    """

    timeout_s: Optional[float] = DEFAULT_TIMEOUT_S
    extra_path: List[str] = field(default_factory=list)
    extra_env: Dict[str, str] = field(default_factory=dict)

    def environ(self, env: Mapping[str, str] | None = None) -> Dict[str, str]:
        merged = dict(os.environ, **self.extra_env)
        if self.extra_path:
            merged["PATH"] = os.pathsep.join([*self.extra_path, merged.get("PATH", "")])
        merged.update(env or {})
        return merged

    def prepend_path(self, *dirs: str) -> None:
        for d in reversed(dirs):
            if d in self.extra_path:
                continue
            self.extra_path.insert(0, d)
            logger.info("Session PATH += %s", d)

    def set_env(self, key: str, value: str) -> None:
        self.extra_env[key] = value

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name, path=self.environ().get("PATH"))

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        input_text: str | None = None,
        timeout_s: float | None = None,
    ) -> CmdResult:
        """Run a command with consistent logging.

        - Always logs the command.
        - Captures stdout/stderr; the stderr tail goes into raised errors.
        - Bounded by the session timeout unless timeout_s overrides it.
        """

        argv_list = list(argv)
        logger.info("CMD %s", _fmt_argv(argv_list))

        limit = timeout_s if timeout_s is not None else self.timeout_s
        try:
            p = subprocess.run(
                argv_list,
                input=input_text,
                text=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=cwd,
                env=self.environ(env),
                timeout=limit,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandTimeout(f"Command timed out after {limit}s: {_fmt_argv(argv_list)}") from e
        except OSError as e:
            raise CommandError(f"Command could not start: {_fmt_argv(argv_list)} ({e})") from e

        if p.stdout:
            logger.debug("STDOUT %s", p.stdout.strip())
        if p.stderr:
            logger.debug("STDERR %s", p.stderr.strip())

        if check and p.returncode != 0:
            raise CommandError(f"Command failed ({p.returncode}): {_fmt_argv(argv_list)}\n{_tail(p.stderr)}")

        return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)

    def succeeds(self, argv: Sequence[str]) -> bool:
        """True if the command exits 0; a missing binary counts as failure."""
        try:
            return self.run(argv, check=False).ok
        except CommandError:
            return False
