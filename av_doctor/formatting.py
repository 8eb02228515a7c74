"""Console-friendly report rendering."""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple, Union

from rich.console import Console

from .models import DiagnosticResult, Severity, SystemInfo

if TYPE_CHECKING:
    from .remediation import FixOutcome

SEVERITY_ICONS: Dict[str, str] = {
    "critical": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "success": "✅",
}
CATEGORY_ICONS: Dict[str, str] = {
    "audio": "🔊",
    "video": "🎬",
    "gpu": "🎮",
    "system": "💻",
    "network": "🌐",
}
DEFAULT_SEVERITY_ICON = "•"
DEFAULT_CATEGORY_ICON = "📌"
REPORT_TITLE = "📋 Diagnostic Report"


def severity_icon(severity: Union[str, Enum]) -> str:
    return SEVERITY_ICONS.get(_key(severity), DEFAULT_SEVERITY_ICON)


def category_icon(category: Union[str, Enum]) -> str:
    return CATEGORY_ICONS.get(_key(category), DEFAULT_CATEGORY_ICON)


def group_by_category(results: Sequence[DiagnosticResult]) -> List[Tuple[str, List[DiagnosticResult]]]:
    """Group findings by category, ordered by first appearance, keeping input order inside each group."""
    groups: Dict[str, List[DiagnosticResult]] = {}
    for result in results:
        groups.setdefault(_key(result.category), []).append(result)
    return list(groups.items())


def generate_report(results: Sequence[DiagnosticResult], console: Optional[Console] = None) -> str:
    """Render the grouped report, print it and return the text."""
    lines = [REPORT_TITLE, "=" * 50]
    if not results:
        lines.append("No findings.")
    for category, group in group_by_category(results):
        lines.append("")
        lines.append(f"{category_icon(category)} {category.upper()}")
        for result in group:
            lines.append(f"  {severity_icon(result.severity)} {result.message}")
            if result.fix:
                lines.append(f"      Fix: {result.fix}")
    if results:
        lines.append("")
        lines.append(format_summary(results))
    text = "\n".join(lines)
    (console or Console()).print(text, markup=False, highlight=False, soft_wrap=True)
    return text


def format_summary(results: Sequence[DiagnosticResult]) -> str:
    counts = Counter(_key(result.severity) for result in results)
    parts = [f"{counts.get(severity.value, 0)} {severity.value}" for severity in Severity]
    fixable = sum(1 for result in results if result.has_command)
    return f"Summary: {', '.join(parts)} | {fixable} automatic fix(es) available"


def format_system_info(info: SystemInfo) -> str:
    lines = [
        f"Kernel: {info.kernel}",
        f"Distro: {info.distro}",
        f"Desktop: {info.desktop}",
        f"Audio server: {info.audio_server}",
    ]
    if info.gpu_driver:
        lines.append(f"GPU driver: {info.gpu_driver}")
    return "\n".join(lines)


def format_outcomes(outcomes: Sequence["FixOutcome"]) -> str:
    rows = [
        [str(outcome.index + 1), outcome.status.value, outcome.result.message, outcome.reason or ""]
        for outcome in outcomes
    ]
    return render_table(["#", "Status", "Finding", "Detail"], rows) if rows else "No fixes to apply"


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))
    lines = []
    lines.append(_format_row(headers, widths))
    lines.append(_format_row(["-" * w for w in widths], widths))
    for row in rows:
        lines.append(_format_row(row, widths))
    return "\n".join(lines)


def _format_row(row: Sequence[str], widths: Sequence[int]) -> str:
    padded = [cell.ljust(width) for cell, width in zip(row, widths)]
    return " | ".join(padded).rstrip()


def _key(value: Union[str, Enum]) -> str:
    return str(value.value) if isinstance(value, Enum) else str(value)
