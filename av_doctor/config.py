"""Runtime settings with environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

ENV_PREFIX = "AV_DOCTOR_"
DEFAULT_FIX_SCRIPT = Path("/tmp/av-fixes.sh")


@dataclass(frozen=True)
class DiagnosticsConfig:
    command_timeout: float = 5.0
    fix_timeout: float = 120.0
    fix_script_path: Path = DEFAULT_FIX_SCRIPT
    ping_host: str = "8.8.8.8"
    concurrent: bool = False
    playback_tests: bool = False

    def with_overrides(self, **changes: object) -> "DiagnosticsConfig":
        """Return a copy with every non-None keyword applied."""
        return replace(self, **{key: value for key, value in changes.items() if value is not None})


def load_config(environ: Optional[Mapping[str, str]] = None) -> DiagnosticsConfig:
    """Build a config from ``AV_DOCTOR_*`` variables, falling back to defaults."""
    env = os.environ if environ is None else environ
    defaults = DiagnosticsConfig()
    return DiagnosticsConfig(
        command_timeout=_positive_float(env, "COMMAND_TIMEOUT", defaults.command_timeout),
        fix_timeout=_positive_float(env, "FIX_TIMEOUT", defaults.fix_timeout),
        fix_script_path=Path(env.get(ENV_PREFIX + "FIX_SCRIPT", str(defaults.fix_script_path))),
        ping_host=env.get(ENV_PREFIX + "PING_HOST", defaults.ping_host),
        concurrent=_flag(env, "CONCURRENT", defaults.concurrent),
        playback_tests=_flag(env, "PLAYBACK_TESTS", defaults.playback_tests),
    )


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{ENV_PREFIX}{name} must be positive, got {raw!r}")
    return value


def _flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(ENV_PREFIX + name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}
