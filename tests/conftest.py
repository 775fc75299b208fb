"""
Shared test fixtures: a scripted command runner and a throwaway home.
"""

from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from macsetup.config import SetupConfig, deep_merge, load_config
from macsetup.context import ProvisionContext
from macsetup.lib.command import CmdResult, CommandError, CommandRunner

Handler = Callable[[List[str]], Tuple[int, str]]


class FakeRunner(CommandRunner):
    """CommandRunner that answers from rules instead of spawning processes.

    Rules match on an argv prefix; the most recently added rule wins.
    Unmatched commands exit 1, which checks read as "not satisfied".
    """

    def __init__(self) -> None:
        super().__init__(timeout_s=None)
        self.calls: List[List[str]] = []
        self.envs: List[dict] = []
        self.rules: List[Tuple[List[str], Handler]] = []
        self.binaries: dict = {}

    def on(
        self,
        *prefix: str,
        rc: int = 0,
        stdout: str = "",
        fn: Optional[Handler] = None,
        effect: Optional[Callable[[List[str]], None]] = None,
    ) -> None:
        def handler(argv: List[str]) -> Tuple[int, str]:
            if effect is not None:
                effect(argv)
            if fn is not None:
                return fn(argv)
            return rc, stdout

        self.rules.insert(0, (list(prefix), handler))

    def which(self, name: str) -> Optional[str]:
        return self.binaries.get(name)

    def run(self, argv: Sequence[str], *, check: bool = True, env=None, cwd=None, input_text=None, timeout_s=None):
        argv_list = list(argv)
        self.calls.append(argv_list)
        self.envs.append(dict(env or {}))
        rc, out = 1, ""
        for prefix, handler in self.rules:
            if argv_list[: len(prefix)] == prefix:
                rc, out = handler(argv_list)
                break
        if check and rc != 0:
            raise CommandError(f"Command failed ({rc}): {' '.join(argv_list)}")
        return CmdResult(argv=argv_list, returncode=rc, stdout=out, stderr="")

    def count(self, *prefix: str) -> int:
        return sum(1 for c in self.calls if c[: len(prefix)] == list(prefix))


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    h = tmp_path / "home"
    h.mkdir()
    return h


@pytest.fixture
def make_ctx(home: Path, runner: FakeRunner):
    """Build a ProvisionContext over the bundled config with overrides applied."""

    def _make(overrides: Optional[dict] = None) -> ProvisionContext:
        base = load_config().raw
        raw = deep_merge(base, {"home": str(home), **(overrides or {})})
        return ProvisionContext.create(SetupConfig(raw=raw), runner=runner)

    return _make
