from __future__ import annotations

import logging
import select
import sys
from typing import IO, Optional

logger = logging.getLogger(__name__)


class ConfirmationTimeout(RuntimeError):
    pass


class ConfirmationUnavailable(RuntimeError):
    pass


def wait_for_confirmation(
    *,
    timeout_s: Optional[float] = None,
    stream: Optional[IO[str]] = None,
    require_tty: bool = True,
) -> str:
    """Block until the operator presses Enter on `stream`.

    timeout_s None (or 0) waits forever. Returns the line read, stripped.
    """

    s = stream if stream is not None else sys.stdin
    if require_tty and not s.isatty():
        raise ConfirmationUnavailable("Confirmation needs an interactive terminal (stdin is not a TTY)")

    if timeout_s:
        ready, _, _ = select.select([s], [], [], timeout_s)
        if not ready:
            raise ConfirmationTimeout(f"No confirmation within {timeout_s:g}s")

    line = s.readline()
    if line == "":
        raise ConfirmationUnavailable("stdin closed while waiting for confirmation")
    logger.info("Operator confirmed")
    return line.strip()
