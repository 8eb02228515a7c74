"""Run every subsystem in declared order and merge their findings."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

from . import diagnostics, playback, system_state
from .config import DiagnosticsConfig
from .errors import SubsystemDiagnosisError
from .models import UNKNOWN, Category, DiagnosticResult, Severity, SystemInfo

logger = logging.getLogger(__name__)

Collector = Callable[[DiagnosticsConfig], Any]
Rules = Callable[[Any], Sequence[DiagnosticResult]]


@dataclass(frozen=True)
class Subsystem:
    name: str
    category: Category
    collect: Collector
    diagnose: Rules


SUBSYSTEMS: Tuple[Subsystem, ...] = (
    Subsystem("audio", Category.AUDIO, system_state.collect_audio, diagnostics.diagnose_audio),
    Subsystem("video", Category.VIDEO, system_state.collect_video, diagnostics.diagnose_video),
    Subsystem("gpu", Category.GPU, system_state.collect_gpu, diagnostics.diagnose_gpu),
    Subsystem("system", Category.SYSTEM, system_state.collect_system, diagnostics.diagnose_system),
    Subsystem("network", Category.NETWORK, system_state.collect_network, diagnostics.diagnose_network),
)

PLAYBACK = Subsystem("playback", Category.VIDEO, playback.collect_playback, playback.diagnose_playback)


@dataclass
class DiagnosticRun:
    system_info: SystemInfo
    results: List[DiagnosticResult] = field(default_factory=list)


def default_subsystems(config: DiagnosticsConfig) -> Tuple[Subsystem, ...]:
    return SUBSYSTEMS + (PLAYBACK,) if config.playback_tests else SUBSYSTEMS


def run_all(
    subsystems: Optional[Sequence[Subsystem]] = None,
    config: Optional[DiagnosticsConfig] = None,
) -> List[DiagnosticResult]:
    """Collect and diagnose each subsystem, isolating failures.

    A subsystem that raises contributes exactly one critical finding and the
    remaining subsystems still run. Output order follows ``subsystems``, and
    within a subsystem follows its rules, even when collection is concurrent.
    """
    cfg = config or DiagnosticsConfig()
    selected = list(default_subsystems(cfg) if subsystems is None else subsystems)
    results: List[DiagnosticResult] = []

    if cfg.concurrent and len(selected) > 1:
        with ThreadPoolExecutor(max_workers=len(selected), thread_name_prefix="collector") as pool:
            futures = [pool.submit(subsystem.collect, cfg) for subsystem in selected]
            for subsystem, future in zip(selected, futures):
                results.extend(_diagnose_isolated(subsystem, _joined(future)))
        return results

    for subsystem in selected:
        results.extend(_diagnose_isolated(subsystem, _deferred(subsystem, cfg)))
    return results


def run_diagnosis(config: Optional[DiagnosticsConfig] = None) -> DiagnosticRun:
    """System identity plus the full finding list for one run."""
    cfg = config or DiagnosticsConfig()
    logger.info("Starting audio/video diagnostics")
    try:
        info = system_state.collect_system_info(cfg)
    except Exception:  # noqa: BLE001 - identity is informational, diagnosis continues
        logger.exception("Could not collect system information")
        info = SystemInfo(kernel=UNKNOWN, distro=UNKNOWN, desktop=UNKNOWN, audio_server=UNKNOWN)
    return DiagnosticRun(system_info=info, results=run_all(config=cfg))


def subsystem_failure(subsystem: Subsystem, error: BaseException) -> DiagnosticResult:
    if not isinstance(error, SubsystemDiagnosisError):
        error = SubsystemDiagnosisError(subsystem.name, error)
    return DiagnosticResult(
        subsystem.category,
        Severity.CRITICAL,
        str(error),
        fix="Re-run with --verbose to see the internal error",
    )


def _diagnose_isolated(subsystem: Subsystem, collect: Callable[[], Any]) -> List[DiagnosticResult]:
    try:
        snapshot = collect()
        return list(subsystem.diagnose(snapshot))
    except Exception as exc:  # noqa: BLE001 - one subsystem must not stop the others
        logger.error("%s diagnostics failed", subsystem.name, exc_info=exc)
        return [subsystem_failure(subsystem, exc)]


def _deferred(subsystem: Subsystem, config: DiagnosticsConfig) -> Callable[[], Any]:
    return lambda: subsystem.collect(config)


def _joined(future: "Future[Any]") -> Callable[[], Any]:
    return future.result
