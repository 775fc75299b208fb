"""Idempotent edits to shell startup files (~/.zshrc, ~/.zprofile).

Two edit shapes are supported:

- plain lines, appended when a marker substring is absent;
- named blocks delimited by ``# >>> macsetup:<name> >>>`` and
  ``# <<< macsetup:<name> <<<``, replaced in place or appended.

Replacing content is destructive, so a backup is taken once per run per file.
Appending never rewrites existing content and takes no backup.
"""

from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Set

logger = logging.getLogger(__name__)


def _begin(name: str) -> str:
    return f"# >>> macsetup:{name} >>>"


def _end(name: str) -> str:
    return f"# <<< macsetup:{name} <<<"


def render_block(name: str, body: str) -> str:
    return "\n".join([_begin(name), body.rstrip("\n"), _end(name)]) + "\n"


def _read(path: Path) -> str:
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8")


@dataclass
class BackupTracker:
    """Best-effort backups taken before the first destructive rewrite of a run."""

    enabled: bool = True
    stamp: str = field(default_factory=lambda: time.strftime("%Y%m%d%H%M%S"))
    done: Set[str] = field(default_factory=set)

    def backup_once(self, path: Path) -> Optional[Path]:
        key = str(path)
        if not self.enabled or key in self.done:
            return None
        self.done.add(key)
        if not path.exists():
            return None
        dest = path.with_name(f"{path.name}.macsetup-{self.stamp}.bak")
        try:
            shutil.copy2(path, dest)
        except OSError as e:
            logger.warning("Could not back up %s: %s", path, e)
            return None
        logger.info("Backed up %s -> %s", path, dest)
        return dest


def has_marker(path: Path, marker: str) -> bool:
    return marker in _read(path)


def has_lines(path: Path, lines: Sequence[str]) -> bool:
    present = set(_read(path).splitlines())
    return all(line in present for line in lines)


def append_lines(path: Path, lines: Sequence[str]) -> None:
    current = _read(path)
    missing = [line for line in lines if line not in set(current.splitlines())]
    if not missing:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        if current and not current.endswith("\n"):
            f.write("\n")
        f.write("\n".join(missing) + "\n")
    logger.info("Appended %d line(s) to %s", len(missing), path)


def _split_block(text: str, name: str) -> Optional[tuple[str, str, str]]:
    begin, end = _begin(name), _end(name)
    start = text.find(begin)
    if start == -1:
        return None
    stop = text.find(end, start)
    if stop == -1:
        raise RuntimeError(f"Unterminated macsetup:{name} block (missing {end!r})")
    stop += len(end)
    if text[stop : stop + 1] == "\n":
        stop += 1
    return text[:start], text[start:stop], text[stop:]


def has_block(path: Path, name: str, body: str) -> bool:
    parts = _split_block(_read(path), name)
    return parts is not None and parts[1] == render_block(name, body)


def replace_block(
    path: Path,
    name: str,
    body: str,
    *,
    backups: BackupTracker,
    takeover: bool = False,
) -> None:
    """Write the named block, replacing an existing copy.

    takeover: when the file exists but has never held this block, discard its
    content (after backing it up) so the block becomes the whole file.
    """

    current = _read(path)
    block = render_block(name, body)
    parts = _split_block(current, name)

    if parts is not None:
        before, _, after = parts
        new = before + block + after
    elif takeover or not current:
        new = block
    else:
        sep = "" if current.endswith("\n") else "\n"
        new = current + sep + block

    if new == current:
        return

    destructive = parts is not None or (takeover and bool(current))
    if destructive:
        backups.backup_once(path)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(new, encoding="utf-8")
    logger.info("Wrote macsetup:%s block to %s", name, path)
