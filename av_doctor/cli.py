"""Entry point for the av-doctor command line tool."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table
from rich.text import Text

from . import __version__
from .aggregator import DiagnosticRun, run_diagnosis
from .config import DiagnosticsConfig, load_config
from .formatting import (
    category_icon,
    format_outcomes,
    format_system_info,
    generate_report,
    group_by_category,
    severity_icon,
)
from .log import setup_logging
from .models import DiagnosticResult
from .remediation import apply_fixes, export_fixes, manual_fixes

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)

    try:
        config = _config_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))

    console = Console()
    try:
        run = run_diagnosis(config)

        if args.json:
            print(_to_json(run))
        elif args.ui:
            _render_rich(run, console)
        else:
            console.print(format_system_info(run.system_info), markup=False, highlight=False)
            console.print()
            generate_report(run.results, console)
            _print_manual_fixes(run.results, console)

        if args.export_fixes is not None:
            _export(run.results, config, console)
        if args.apply_fixes:
            _apply(run.results, config, console, assume_yes=args.yes)
    except KeyboardInterrupt:
        console.print("Interrupted.", style="bold yellow")
        return 130
    except Exception:  # noqa: BLE001 - top-level crash boundary
        logger.exception("Diagnostics crashed")
        return 1
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="av-doctor",
        description="Diagnose audio, video, GPU and streaming problems on a Linux workstation.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--export-fixes",
        nargs="?",
        const=True,
        default=None,
        metavar="PATH",
        help="write all fix commands to an executable shell script (default /tmp/av-fixes.sh)",
    )
    parser.add_argument("--apply-fixes", action="store_true", help="run the fix commands after confirmation")
    parser.add_argument("--yes", "-y", action="store_true", help="do not ask before applying fixes")
    parser.add_argument("--playback-tests", action="store_true", help="render and play test media with FFmpeg")
    parser.add_argument("--concurrent", action="store_true", help="collect subsystem state in parallel")
    parser.add_argument("--timeout", type=float, help="per-command timeout for diagnostic tools, in seconds")
    parser.add_argument("--fix-timeout", type=float, help="per-command timeout for fixes, in seconds")
    parser.add_argument("--json", action="store_true", help="print system info and findings as JSON")
    parser.add_argument("--ui", action="store_true", help="render the report with Rich tables")
    parser.add_argument("--verbose", "-v", action="store_true", help="show debug logging")
    return parser


def _config_from_args(args: argparse.Namespace) -> DiagnosticsConfig:
    for name in ("timeout", "fix_timeout"):
        value = getattr(args, name)
        if value is not None and value <= 0:
            raise ValueError(f"--{name.replace('_', '-')} must be positive")
    script_path = Path(args.export_fixes) if isinstance(args.export_fixes, str) else None
    return load_config().with_overrides(
        command_timeout=args.timeout,
        fix_timeout=args.fix_timeout,
        fix_script_path=script_path,
        concurrent=True if args.concurrent else None,
        playback_tests=True if args.playback_tests else None,
    )


def _export(results: List[DiagnosticResult], config: DiagnosticsConfig, console: Console) -> None:
    try:
        written = export_fixes(results, config.fix_script_path)
    except OSError as exc:
        console.print(f"Could not write fix script to {config.fix_script_path}: {exc}", style="bold red")
        return
    if written is None:
        console.print("No fix commands to export.", style="yellow")
        return
    count = sum(1 for result in results if result.has_command)
    if count == 0:
        console.print("No fix commands to export.", style="yellow")
        console.print(f"Header-only script written to {written}")
        return
    console.print(f"Wrote {count} fix command(s) to {written}", style="bold green")
    console.print(f"Review it, then run: bash {written}")


def _apply(results: List[DiagnosticResult], config: DiagnosticsConfig, console: Console, assume_yes: bool) -> None:
    fixable = [result for result in results if result.has_command]
    if not fixable:
        console.print("No automatic fixes available.", style="green")
        return

    console.print(f"\nThe following {len(fixable)} command(s) will change your system:")
    for result in fixable:
        console.print(f"  $ {result.command}", markup=False, highlight=False)
    if not assume_yes and not _confirm(console):
        console.print("No fixes applied.")
        return

    outcomes = apply_fixes(results, timeout=config.fix_timeout)
    attempted = [outcome for outcome in outcomes if outcome.result.has_command]
    console.print(format_outcomes(attempted), markup=False, highlight=False)
    failures = [outcome for outcome in attempted if outcome.failed]
    if failures:
        for outcome in failures:
            console.print(outcome.reason or "", style="red", markup=False)
    else:
        console.print("All fixes applied.", style="bold green")


def _confirm(console: Console) -> bool:
    try:
        return Confirm.ask("Apply these fixes?", default=False, console=console)
    except EOFError:
        # stdin closed or not a terminal (cron, CI, pipes): treat as "no".
        console.print()
        logger.warning("No answer on stdin; pass --yes to apply fixes non-interactively")
        return False


def _print_manual_fixes(results: List[DiagnosticResult], console: Console) -> None:
    manual = manual_fixes(results)
    if not manual:
        return
    console.print("\nNeeds manual action (no automatic command):")
    for result in manual:
        console.print(f"  • {result.message}: {result.fix}", markup=False, highlight=False)


def _to_json(run: DiagnosticRun) -> str:
    payload: Dict[str, Any] = {
        "system_info": asdict(run.system_info),
        "results": [result.to_dict() for result in run.results],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _render_rich(run: DiagnosticRun, console: Console) -> None:
    info = run.system_info
    console.print(Panel("Audio/Video diagnostics", style="bold cyan"))

    summary = Table(show_header=False, box=box.ROUNDED)
    summary.add_row("Kernel", info.kernel)
    summary.add_row("Distro", info.distro)
    summary.add_row("Desktop", info.desktop)
    summary.add_row("Audio server", info.audio_server)
    summary.add_row("GPU driver", info.gpu_driver or "-")
    console.print(summary)

    if not run.results:
        console.print(Panel("No findings.", style="bold green"))
        return

    for category, group in group_by_category(run.results):
        table = Table(title=f"{category_icon(category)} {category.upper()}", box=box.SIMPLE_HEAD)
        table.add_column("", justify="center")
        table.add_column("Finding")
        table.add_column("Fix")
        table.add_column("Command", style="dim")
        for result in group:
            table.add_row(
                severity_icon(result.severity),
                Text(result.message),
                Text(result.fix or ""),
                Text(result.command or ""),
            )
        console.print(table)


if __name__ == "__main__":
    sys.exit(main())
