"""Apply fix commands one by one, or export them as a shell script."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .commands import CommandResult, run_shell
from .config import DEFAULT_FIX_SCRIPT
from .errors import FixExecutionError
from .models import DiagnosticResult

logger = logging.getLogger(__name__)

SHEBANG = "#!/bin/bash"
SCRIPT_MODE = 0o755
DEFAULT_FIX_TIMEOUT = 120.0

Runner = Callable[[str, float], CommandResult]


class FixStatus(str, Enum):
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class FixOutcome:
    index: int
    result: DiagnosticResult
    status: FixStatus
    reason: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is FixStatus.FAILED


def apply_fixes(
    results: Sequence[DiagnosticResult],
    timeout: float = DEFAULT_FIX_TIMEOUT,
    runner: Runner = run_shell,
    should_continue: Optional[Callable[[], bool]] = None,
) -> List[FixOutcome]:
    """Run every finding's command in order and report one outcome per finding.

    A failing or hanging command is recorded and the batch moves on. Findings
    without a command are marked skipped. ``should_continue`` is consulted
    before each command; once it returns False the rest are skipped unrun.
    Nothing is remembered between calls, so toggle-style commands flip again
    when re-applied.
    """
    outcomes: List[FixOutcome] = []
    cancelled = False
    for index, result in enumerate(results):
        if not result.has_command:
            outcomes.append(FixOutcome(index, result, FixStatus.SKIPPED, _skip_reason(result)))
            continue
        if cancelled or (should_continue is not None and not should_continue()):
            cancelled = True
            outcomes.append(FixOutcome(index, result, FixStatus.SKIPPED, "cancelled before start"))
            continue
        outcomes.append(_apply_one(index, result, timeout, runner))
    return outcomes


def build_fix_script(results: Sequence[DiagnosticResult]) -> str:
    """Render the remediation script text; deterministic for a given input."""
    exportable = [result for result in results if result.has_command]
    lines = [
        SHEBANG,
        f"# av-doctor remediation script: {len(exportable)} fix(es).",
        "# Review before running. Commands are not guaranteed to be idempotent.",
        "",
    ]
    for result in exportable:
        lines.append(f"# [{result.category.value}/{result.severity.value}] {_one_line(result.message)}")
        lines.append(result.command or "")
    return "\n".join(lines) + "\n"


def export_fixes(
    results: Sequence[DiagnosticResult],
    path: Union[str, Path] = DEFAULT_FIX_SCRIPT,
) -> Optional[Path]:
    """Write the remediation script with mode 0755 and return its path.

    With nothing to export a header-only script is written; if that write
    fails the error is logged and None is returned instead of raising.
    """
    target = Path(path)
    exportable = sum(1 for result in results if result.has_command)
    for result in manual_fixes(results):
        logger.warning("Not exported, needs manual action: %s (%s)", result.message, result.fix)

    try:
        target.write_text(build_fix_script(results), encoding="utf-8")
        target.chmod(SCRIPT_MODE)
    except OSError as exc:
        if exportable:
            raise
        logger.warning("Skipped writing empty fix script to %s: %s", target, exc)
        return None

    logger.info("Exported %d fix command(s) to %s", exportable, target)
    return target


def manual_fixes(results: Sequence[DiagnosticResult]) -> List[DiagnosticResult]:
    """Findings that describe a fix but carry no command to automate it."""
    return [result for result in results if result.fix and not result.has_command]


def _apply_one(index: int, result: DiagnosticResult, timeout: float, runner: Runner) -> FixOutcome:
    command = result.command or ""
    logger.info("Applying fix %d: %s", index + 1, command)
    try:
        completed = runner(command, timeout)
        if not completed.success:
            raise FixExecutionError(command, completed.describe(), completed)
    except FixExecutionError as exc:
        logger.error("fix %d failed: %s", index + 1, exc.reason)
        return FixOutcome(index, result, FixStatus.FAILED, f"fix {index + 1} failed: {exc.reason}")
    except Exception as exc:  # noqa: BLE001 - a broken runner must not stop the batch
        logger.exception("fix %d failed", index + 1)
        return FixOutcome(index, result, FixStatus.FAILED, f"fix {index + 1} failed: {type(exc).__name__}: {exc}")
    return FixOutcome(index, result, FixStatus.APPLIED)


def _skip_reason(result: DiagnosticResult) -> str:
    if result.fix:
        return f"no command; manual fix: {result.fix}"
    return "no command"


def _one_line(text: str) -> str:
    return " ".join(text.split())
