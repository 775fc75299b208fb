from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import IO, Optional

DEFAULT_LOG_PATH = "~/Library/Logs/macsetup.log"
PROGRESS_LOGGER = "macsetup.progress"

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

_RED = "\033[0;31m"
_GREEN = "\033[0;32m"
_YELLOW = "\033[1;33m"
_BLUE = "\033[0;34m"
_NC = "\033[0m"


class ProgressFormatter(logging.Formatter):
    """Operator-facing lines: `==>` step, `✓` success, `⚠` warning, `✗` error."""

    MARKS = {
        logging.INFO: ("==>", _BLUE),
        SUCCESS: ("✓", _GREEN),
        logging.WARNING: ("⚠", _YELLOW),
        logging.ERROR: ("✗", _RED),
    }

    def __init__(self, color: bool = False) -> None:
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelno if record.levelno in self.MARKS else logging.ERROR
        mark, color = self.MARKS[level]
        if self.color:
            mark = f"{color}{mark}{_NC}"
        return f"{mark} {record.getMessage()}"


class Progress:
    def __init__(self, name: str = PROGRESS_LOGGER) -> None:
        self.logger = logging.getLogger(name)

    def step(self, msg: str, *args: object) -> None:
        self.logger.info(msg, *args)

    def success(self, msg: str, *args: object) -> None:
        self.logger.log(SUCCESS, msg, *args)

    def warning(self, msg: str, *args: object) -> None:
        self.logger.warning(msg, *args)

    def error(self, msg: str, *args: object) -> None:
        self.logger.error(msg, *args)


progress = Progress()


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
    console_stream: Optional[IO[str]] = None,
) -> str:
    """Configure logging.

    Everything (commands, their output at DEBUG, decisions) goes to the log
    file. The console only shows progress lines, on stdout, without timestamps.

    If the requested log path is not writable we fall back to a file in the
    working directory. Returns the actual file path being used.
    """

    logger = logging.getLogger()
    logger.setLevel(min(level, logging.DEBUG))

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_macsetup_configured", False):
        return getattr(logger, "_macsetup_log_path", log_path)

    requested = os.path.expanduser(log_path)
    chosen_path = requested

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    try:
        Path(os.path.dirname(requested) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(requested)
    except OSError:
        chosen_path = str(Path.cwd() / "macsetup.log")
        file_handler = logging.FileHandler(chosen_path)
    file_handler.setFormatter(fmt)
    file_handler.setLevel(logging.DEBUG)
    logger.addHandler(file_handler)

    if also_console:
        stream = console_stream if console_stream is not None else sys.stdout
        console = logging.StreamHandler(stream)
        console.setFormatter(ProgressFormatter(color=bool(getattr(stream, "isatty", lambda: False)())))
        console.setLevel(level)
        logging.getLogger(PROGRESS_LOGGER).addHandler(console)

    setattr(logger, "_macsetup_configured", True)
    setattr(logger, "_macsetup_log_path", chosen_path)

    logging.getLogger(__name__).info("Logging initialized (requested=%s, actual=%s)", requested, chosen_path)
    return chosen_path
