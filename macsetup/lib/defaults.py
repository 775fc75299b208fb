from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from .command import CommandRunner

logger = logging.getLogger(__name__)

PREF_TYPES = ("int", "float", "bool", "string", "array")


@dataclass(frozen=True)
class Preference:
    """One `defaults write <domain> <key> -<type> <value>` setting."""

    domain: str
    key: str
    type: str
    value: Any

    def __post_init__(self) -> None:
        if self.type not in PREF_TYPES:
            raise ValueError(f"{self.domain}/{self.key}: unsupported type {self.type!r}")
        if self.type == "array" and not isinstance(self.value, (list, tuple)):
            raise ValueError(f"{self.domain}/{self.key}: array value must be a list")
        if self.type == "bool" and not isinstance(self.value, bool):
            raise ValueError(f"{self.domain}/{self.key}: bool value must be true/false")
        if self.type in {"int", "float"} and (isinstance(self.value, bool) or not isinstance(self.value, (int, float))):
            raise ValueError(f"{self.domain}/{self.key}: {self.type} value must be numeric")

    @property
    def label(self) -> str:
        return f"{self.domain}/{self.key}"

    def write_args(self) -> List[str]:
        if self.type == "array":
            return ["-array", *[str(v) for v in self.value]]
        if self.type == "bool":
            return ["-bool", "true" if self.value else "false"]
        return [f"-{self.type}", str(self.value)]


def _parse_array(text: str) -> List[str]:
    body = text.strip()
    if body.startswith("(") and body.endswith(")"):
        body = body[1:-1]
    items: List[str] = []
    for raw in body.split(","):
        item = raw.strip()
        if not item:
            continue
        if len(item) >= 2 and item[0] == item[-1] == '"':
            item = item[1:-1]
        items.append(item)
    return items


def value_matches(pref: Preference, raw: Optional[str]) -> bool:
    """Compare `defaults read` output with the desired value."""

    if raw is None:
        return False
    text = raw.strip()
    if pref.type == "bool":
        return text in {"1", "0"} and (text == "1") == bool(pref.value)
    if pref.type == "int":
        return re.fullmatch(r"-?\d+", text) is not None and int(text) == int(pref.value)
    if pref.type == "float":
        try:
            return abs(float(text) - float(pref.value)) < 1e-6
        except ValueError:
            return False
    if pref.type == "array":
        return _parse_array(text) == [str(v) for v in pref.value]
    return text == str(pref.value)


@dataclass(frozen=True)
class Defaults:
    runner: CommandRunner

    def read(self, domain: str, key: str) -> Optional[str]:
        r = self.runner.run(["defaults", "read", domain, key], check=False)
        if not r.ok:
            return None
        return r.stdout

    def write(self, pref: Preference) -> None:
        self.runner.run(["defaults", "write", pref.domain, pref.key, *pref.write_args()])

    def matches(self, pref: Preference) -> bool:
        return value_matches(pref, self.read(pref.domain, pref.key))
