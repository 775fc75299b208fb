"""
Tests for the Provisioner: ordering, idempotency, fatal short-circuit.
"""

from pathlib import Path

import pytest

from macsetup.lib import shellrc
from macsetup.lib.brew import Homebrew
from macsetup.lib.git import Git
from macsetup.pipeline import Provisioner, RunReport, Step, StepKind, StepResult, StepStatus


class Probe:
    """A step over a flag in a simulated system, counting calls."""

    def __init__(self, system: dict, name: str, *, fails: bool = False, sticks: bool = True, events=None):
        self.system = system
        self.name = name
        self.fails = fails
        self.sticks = sticks
        self.events = events if events is not None else []
        self.checks = 0
        self.applies = 0

    def check(self) -> bool:
        self.checks += 1
        self.events.append(("check", self.name))
        return bool(self.system.get(self.name))

    def apply(self) -> None:
        self.applies += 1
        self.events.append(("apply", self.name))
        if self.fails:
            raise RuntimeError(f"{self.name} exploded")
        if self.sticks:
            self.system[self.name] = True

    def step(self, **kw) -> Step:
        return Step(name=self.name, check=self.check, apply=self.apply, **kw)


class TestProvisioner:
    def test_already_satisfied_never_applies(self):
        """check true means apply is not called at all."""
        p = Probe({"a": True}, "a")
        report = Provisioner().run([p.step()])
        assert report.statuses() == [StepStatus.ALREADY_SATISFIED]
        assert p.applies == 0
        assert report.ok

    def test_apply_then_verify(self):
        p = Probe({}, "a")
        report = Provisioner().run([p.step()])
        assert report.statuses() == [StepStatus.APPLIED]
        assert p.applies == 1
        assert p.checks == 2

    def test_second_run_is_all_already_satisfied(self):
        system: dict = {"b": True}
        probes = [Probe(system, n) for n in ("a", "b", "c")]

        first = Provisioner().run([p.step() for p in probes])
        assert first.statuses() == [StepStatus.APPLIED, StepStatus.ALREADY_SATISFIED, StepStatus.APPLIED]

        second = Provisioner().run([p.step() for p in probes])
        assert second.statuses() == [StepStatus.ALREADY_SATISFIED] * 3
        assert [p.applies for p in probes] == [1, 0, 1]

    def test_order_is_preserved(self):
        events: list = []
        system: dict = {}
        probes = [Probe(system, n, events=events) for n in ("x", "y")]
        report = Provisioner().run([p.step() for p in probes])

        assert [r.name for r in report.results] == ["x", "y"]
        assert events == [
            ("check", "x"),
            ("apply", "x"),
            ("check", "x"),
            ("check", "y"),
            ("apply", "y"),
            ("check", "y"),
        ]

    def test_fatal_failure_skips_the_rest(self):
        system: dict = {}
        a = Probe(system, "a", fails=True)
        b = Probe(system, "b")
        c = Probe(system, "c")
        report = Provisioner().run([a.step(fatal=True), b.step(), c.step()])

        assert report.statuses() == [StepStatus.FAILED, StepStatus.SKIPPED, StepStatus.SKIPPED]
        assert not report.ok
        assert "a exploded" in report.results[0].detail
        assert b.checks == 0 and c.checks == 0
        assert report.results[1].detail == "not run: a failed"

    def test_non_fatal_failure_continues(self):
        system: dict = {}
        a = Probe(system, "a", fails=True)
        b = Probe(system, "b")
        report = Provisioner().run([a.step(fatal=False), b.step()])

        assert report.statuses() == [StepStatus.FAILED, StepStatus.APPLIED]
        assert report.ok
        assert [r.name for r in report.failed()] == ["a"]

    def test_apply_that_does_not_converge_fails(self):
        p = Probe({}, "a", sticks=False)
        report = Provisioner().run([p.step(fatal=False)])
        assert report.statuses() == [StepStatus.FAILED]
        assert report.results[0].detail == "apply succeeded but check still fails"

    def test_verify_can_be_disabled(self):
        p = Probe({}, "a", sticks=False)
        assert Provisioner(verify=False).run([p.step()]).statuses() == [StepStatus.APPLIED]
        q = Probe({}, "b", sticks=False)
        assert Provisioner().run([q.step(verify=False)]).statuses() == [StepStatus.APPLIED]
        assert q.checks == 1

    def test_check_that_raises_is_a_failure(self):
        def boom() -> bool:
            raise OSError("permission denied")

        applied = []
        report = Provisioner().run([Step(name="a", check=boom, apply=lambda: applied.append(1))])
        assert report.statuses() == [StepStatus.FAILED]
        assert "permission denied" in report.results[0].detail
        assert applied == []
        assert not report.ok

    def test_dry_run_reports_without_applying(self):
        system: dict = {"b": True}
        a, b = Probe(system, "a"), Probe(system, "b")
        report = Provisioner(dry_run=True).run([a.step(), b.step()])
        assert report.statuses() == [StepStatus.SKIPPED, StepStatus.ALREADY_SATISFIED]
        assert report.results[0].detail == "dry run: would apply"
        assert a.applies == 0
        assert report.ok

    def test_reentered_skips_first_entry_only_steps(self):
        p = Probe({}, "prompt")
        step = p.step(kind=StepKind.INTERACTIVE, first_entry_only=True)

        report = Provisioner(reentered=True).run([step])
        assert report.statuses() == [StepStatus.SKIPPED]
        assert report.results[0].detail == "already re-entered"
        assert p.checks == 1
        assert p.applies == 0

        assert Provisioner().run([step]).statuses() == [StepStatus.APPLIED]

    def test_reentered_still_reports_a_satisfied_prerequisite(self):
        p = Probe({"prompt": True}, "prompt")
        step = p.step(kind=StepKind.INTERACTIVE, first_entry_only=True)

        report = Provisioner(reentered=True).run([step])
        assert report.statuses() == [StepStatus.ALREADY_SATISFIED]
        assert p.applies == 0

    def test_duplicate_names_rejected(self):
        p = Probe({}, "a")
        with pytest.raises(ValueError, match="Duplicate"):
            Provisioner().run([p.step(), p.step()])
        assert p.checks == 0


class TestRunReport:
    def test_ok_only_considers_fatal_failures(self):
        report = RunReport(
            results=(
                StepResult("a", StepStatus.FAILED, "x", fatal=False),
                StepResult("b", StepStatus.APPLIED),
            )
        )
        assert report.ok

    def test_to_dict(self):
        report = RunReport(
            results=(
                StepResult("a", StepStatus.FAILED, "boom", fatal=True),
                StepResult("b", StepStatus.SKIPPED, "not run: a failed"),
            )
        )
        d = report.to_dict()
        assert d["ok"] is False
        assert d["counts"] == {"failed": 1, "skipped": 1}
        assert d["steps"][0] == {"name": "a", "status": "failed", "detail": "boom", "fatal": True, "duration_s": 0.0}


class TestScenarios:
    def test_tool_present_clone_and_append(self, runner, tmp_path: Path):
        """[present tool, clone into absent dir, append absent line] -> satisfied, applied, applied."""
        runner.binaries["brew"] = "/opt/homebrew/bin/brew"
        brew = Homebrew(runner=runner)
        git = Git(runner=runner)
        dest = tmp_path / "plugins" / "zsh-autosuggestions"
        rc = tmp_path / ".zprofile"
        line = 'eval "$(/opt/homebrew/bin/brew shellenv)"'
        runner.on("git", "clone", effect=lambda argv: Path(argv[-1]).mkdir(parents=True))

        steps = [
            Step(name="check-tool", check=brew.is_available, apply=lambda: None),
            Step(name="clone-repo", check=dest.is_dir, apply=lambda: git.clone("https://example.invalid/r", str(dest))),
            Step(
                name="append-line",
                check=lambda: shellrc.has_lines(rc, [line]),
                apply=lambda: shellrc.append_lines(rc, [line]),
            ),
        ]
        report = Provisioner().run(steps)

        assert report.statuses() == [StepStatus.ALREADY_SATISFIED, StepStatus.APPLIED, StepStatus.APPLIED]
        assert report.ok
        assert rc.read_text() == line + "\n"
        assert runner.count("git", "clone") == 1

        again = Provisioner().run(steps)
        assert again.statuses() == [StepStatus.ALREADY_SATISFIED] * 3
        assert runner.count("git", "clone") == 1

    def test_failed_fatal_install_stops_everything(self, runner):
        brew = Homebrew(runner=runner)
        runner.on("/opt/homebrew/bin/brew", "install", rc=1)
        later = []

        steps = [
            Step(name="install-package", check=lambda: brew.is_installed("neovim"), apply=lambda: brew.install(["neovim"])),
            Step(name="after", check=lambda: later.append("check") or False, apply=lambda: later.append("apply")),
        ]
        report = Provisioner().run(steps)

        assert report.statuses() == [StepStatus.FAILED, StepStatus.SKIPPED]
        assert not report.ok
        assert "Command failed (1)" in report.results[0].detail
        assert later == []
