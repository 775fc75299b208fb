from __future__ import annotations

import logging
import os
import tempfile
from typing import Mapping, Sequence

from .command import CommandRunner

logger = logging.getLogger(__name__)


def fetch_script(runner: CommandRunner, url: str) -> str:
    r = runner.run(["curl", "--proto", "=https", "--tlsv1.2", "-fsSL", url])
    if not r.stdout.strip():
        raise RuntimeError(f"Empty installer script from {url}")
    return r.stdout


def run_install_script(
    runner: CommandRunner,
    url: str,
    *,
    shell: str = "/bin/bash",
    args: Sequence[str] = (),
    env: Mapping[str, str] | None = None,
) -> None:
    """Equivalent of `shell -c "$(curl -fsSL url)" args...`."""

    script = fetch_script(runner, url)
    fd, path = tempfile.mkstemp(prefix="macsetup-", suffix=".sh")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(script)
        logger.info("Running installer from %s (%d bytes)", url, len(script))
        runner.run([shell, path, *args], env=env)
    finally:
        os.unlink(path)
