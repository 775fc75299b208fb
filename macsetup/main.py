from __future__ import annotations

import argparse
import logging
from typing import List, Optional, Sequence

from .config import ConfigError, load_config
from .context import ProvisionContext
from .logging_utils import DEFAULT_LOG_PATH, configure_logging, progress
from .pipeline import Provisioner, RunReport, Step, StepStatus
from .report_store import save_report
from .steps import build_steps

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def select_steps(steps: Sequence[Step], only: Optional[Sequence[str]]) -> List[Step]:
    """Keep only the named steps, in their configured order."""

    if not only:
        return list(steps)
    wanted = set(only)
    unknown = wanted - {s.name for s in steps}
    if unknown:
        raise ConfigError(f"Unknown step(s): {', '.join(sorted(unknown))}")
    return [s for s in steps if s.name in wanted]


def print_summary(report: RunReport) -> None:
    for r in report.results:
        line = f"{r.name}: {r.status.value}" + (f" ({r.detail})" if r.detail else "")
        if r.status is StepStatus.FAILED:
            progress.error("%s", line)
        elif r.status is StepStatus.SKIPPED:
            progress.warning("%s", line)
        else:
            progress.success("%s", line)

    if report.ok:
        progress.success("Setup complete! Some changes may require a logout or restart to take full effect.")
    else:
        progress.error("Setup stopped: a required step failed. Fix it and re-run; completed steps will be skipped.")


def run(
    *,
    config_path: Optional[str] = None,
    report_path: Optional[str] = None,
    dry_run: bool = False,
    verify: bool = True,
    reentered: bool = False,
    only: Optional[Sequence[str]] = None,
) -> RunReport:
    """Build the step list from config and run it once."""

    cfg = load_config(config_path)
    ctx = ProvisionContext.create(cfg)
    steps = select_steps(build_steps(ctx), only)

    progress.step("Starting macOS setup (%d steps)...", len(steps))
    try:
        report = Provisioner(verify=verify, dry_run=dry_run, reentered=reentered).run(steps)
    except Exception:
        logger.exception("Provisioner crashed")
        raise

    print_summary(report)
    if report_path:
        save_report(report_path, report.to_dict())
    return report


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="macsetup", description="Idempotent macOS developer machine setup")
    p.add_argument("--config", default=None, help="YAML overlay merged over the bundled defaults")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to the detailed log file")
    p.add_argument("--report", default=None, help="Write the run report here (json|yaml)")
    p.add_argument("--dry-run", action="store_true", help="Run checks only; report what would be applied")
    p.add_argument("--no-verify", action="store_true", help="Do not re-check steps after applying them")
    p.add_argument(
        "--reentered",
        action="store_true",
        help="Running again from a shell started by an earlier run; skips interactive steps",
    )
    p.add_argument("--only", action="append", default=None, metavar="STEP", help="Run only this step (repeatable)")
    p.add_argument("--list", action="store_true", help="List step names in run order and exit")

    args = p.parse_args(argv)

    if args.list:
        try:
            cfg = load_config(args.config)
            steps = build_steps(ProvisionContext.create(cfg))
        except ConfigError as e:
            print(f"config error: {e}")
            return EXIT_CONFIG
        for s in steps:
            print(s.name)
        return EXIT_OK

    configure_logging(log_path=args.log)

    try:
        report = run(
            config_path=args.config,
            report_path=args.report,
            dry_run=bool(args.dry_run),
            verify=not args.no_verify,
            reentered=bool(args.reentered),
            only=args.only,
        )
    except ConfigError as e:
        progress.error("Configuration error: %s", e)
        return EXIT_CONFIG

    return EXIT_OK if report.ok else EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
