"""Opt-in playback tests: render a tone and a clip with FFmpeg, then play and decode them."""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .commands import CommandStatus, run_command
from .config import DiagnosticsConfig
from .models import Category, DiagnosticResult, Severity

logger = logging.getLogger(__name__)

# Encoding a few seconds of 1080p needs more headroom than a tool query.
MIN_PLAYBACK_TIMEOUT = 60.0
RENDER_NODE = "/dev/dri/renderD128"


@dataclass
class PlaybackSnapshot:
    ffmpeg_available: bool
    audio_devices_available: bool
    tone_created: bool = False
    audio_played: Optional[bool] = None
    clip_created: bool = False
    software_decode: Optional[bool] = None
    vaapi_decode: Optional[bool] = None
    cuda_decode: Optional[bool] = None


def collect_playback(config: Optional[DiagnosticsConfig] = None) -> PlaybackSnapshot:
    cfg = config or DiagnosticsConfig()
    timeout = max(cfg.command_timeout, MIN_PLAYBACK_TIMEOUT)

    sinks = run_command(["pactl", "list", "sinks", "short"], timeout=cfg.command_timeout)
    snapshot = PlaybackSnapshot(
        ffmpeg_available=run_command(["ffmpeg", "-version"], timeout=cfg.command_timeout).success,
        audio_devices_available=sinks.success and bool(sinks.stdout.strip()),
    )
    if not snapshot.ffmpeg_available:
        return snapshot

    with tempfile.TemporaryDirectory(prefix="av-doctor-") as scratch:
        tone = Path(scratch) / "test-audio.wav"
        clip = Path(scratch) / "test-video.mp4"

        snapshot.tone_created = run_command(
            ["ffmpeg", "-y", "-f", "lavfi", "-i", "sine=frequency=1000:duration=2", "-c:a", "pcm_s16le", str(tone)],
            timeout=timeout,
        ).success
        if snapshot.tone_created and snapshot.audio_devices_available:
            snapshot.audio_played = run_command(["paplay", "--volume", "32768", str(tone)], timeout=timeout).success

        snapshot.clip_created = run_command(
            [
                "ffmpeg", "-y",
                "-f", "lavfi", "-i", "testsrc=duration=5:size=1920x1080:rate=30",
                "-f", "lavfi", "-i", "sine=frequency=1000:duration=5",
                "-c:v", "libx264", "-preset", "veryfast", "-c:a", "aac",
                str(clip),
            ],
            timeout=timeout,
        ).success
        if snapshot.clip_created:
            snapshot.software_decode = _decode(["-i", str(clip)], timeout)
            snapshot.vaapi_decode = _decode(["-hwaccel", "vaapi", "-hwaccel_device", RENDER_NODE, "-i", str(clip)], timeout)
            snapshot.cuda_decode = _decode(["-hwaccel", "cuda", "-i", str(clip)], timeout)

    return snapshot


def diagnose_playback(snapshot: PlaybackSnapshot) -> List[DiagnosticResult]:
    results: List[DiagnosticResult] = []

    if not snapshot.ffmpeg_available:
        results.append(
            DiagnosticResult(
                Category.VIDEO,
                Severity.WARNING,
                "Playback tests skipped: FFmpeg is not installed",
                fix="Install FFmpeg to run playback tests",
                command="sudo apt install ffmpeg",
            )
        )
        return results

    if not snapshot.audio_devices_available:
        results.append(
            DiagnosticResult(Category.AUDIO, Severity.CRITICAL, "Cannot test playback - no audio devices available")
        )
    elif not snapshot.tone_created:
        results.append(DiagnosticResult(Category.AUDIO, Severity.WARNING, "Could not generate test audio file"))
    elif snapshot.audio_played:
        results.append(DiagnosticResult(Category.AUDIO, Severity.SUCCESS, "Audio playback test successful"))
    else:
        results.append(
            DiagnosticResult(
                Category.AUDIO,
                Severity.CRITICAL,
                "Audio playback test failed",
                fix="Check audio device configuration",
            )
        )

    if not snapshot.clip_created:
        results.append(DiagnosticResult(Category.VIDEO, Severity.WARNING, "Could not generate test video file"))
        return results

    if snapshot.software_decode:
        results.append(DiagnosticResult(Category.VIDEO, Severity.SUCCESS, "Video decode test successful"))
    else:
        results.append(DiagnosticResult(Category.VIDEO, Severity.CRITICAL, "Video decode test failed"))

    if snapshot.vaapi_decode:
        results.append(DiagnosticResult(Category.VIDEO, Severity.SUCCESS, "VA-API hardware decoding works"))
    else:
        results.append(DiagnosticResult(Category.VIDEO, Severity.WARNING, "VA-API hardware decoding failed"))

    if snapshot.cuda_decode:
        results.append(DiagnosticResult(Category.VIDEO, Severity.SUCCESS, "NVIDIA NVDEC hardware decoding works"))

    return results


def _decode(input_args: List[str], timeout: float) -> bool:
    result = run_command(["ffmpeg", "-v", "error", *input_args, "-f", "null", "-"], timeout=timeout)
    if result.status is CommandStatus.TIMED_OUT:
        logger.warning("Decode test timed out: %s", " ".join(input_args))
    return result.success
