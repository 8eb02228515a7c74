"""Turn subsystem snapshots into classified findings with fixes."""

from __future__ import annotations

from typing import List

from .models import Category, DiagnosticResult, Severity
from .system_state import AudioSnapshot, GpuSnapshot, NetworkSnapshot, ResourceSnapshot, VideoSnapshot

LOW_VOLUME_PERCENT = 20
HIGH_GPU_UTILIZATION = 90
HIGH_CPU_PERCENT = 80
HIGH_MEMORY_PERCENT = 90


def diagnose_audio(snapshot: AudioSnapshot) -> List[DiagnosticResult]:
    """Check the sound server, devices, default routing and PipeWire health."""
    results: List[DiagnosticResult] = []

    if snapshot.service_running:
        results.append(_audio(Severity.SUCCESS, f"{snapshot.service} service is running"))
    else:
        results.append(
            _audio(
                Severity.CRITICAL,
                f"{snapshot.service} service is not running",
                fix=f"Start {snapshot.service} service",
                command=f"systemctl --user start {snapshot.service}",
            )
        )

    if snapshot.sinks is not None:
        if not snapshot.sinks:
            results.append(
                _audio(Severity.CRITICAL, "No audio output devices found", fix="Check hardware connections and drivers")
            )
        else:
            results.append(_audio(Severity.SUCCESS, f"Found {len(snapshot.sinks)} audio output device(s)"))
            for sink in snapshot.sinks:
                if sink.state.upper() == "SUSPENDED":
                    results.append(
                        _audio(
                            Severity.WARNING,
                            f"Audio sink {sink.index} ({sink.name}) is suspended",
                            fix="Resume audio sink",
                            command=f"pactl suspend-sink {sink.index} 0",
                        )
                    )

    if snapshot.sources is not None:
        if not snapshot.sources:
            results.append(_audio(Severity.WARNING, "No audio input devices found"))
        else:
            results.append(_audio(Severity.SUCCESS, f"Found {len(snapshot.sources)} audio input device(s)"))

    if snapshot.server == "PipeWire":
        if snapshot.pipewire_dump_ok is False:
            results.append(
                _audio(Severity.WARNING, "PipeWire dump command failed", fix="Check PipeWire installation")
            )
        elif snapshot.pipewire_reports_errors:
            results.append(
                _audio(
                    Severity.WARNING,
                    "PipeWire reports errors in pipeline",
                    fix="Restart PipeWire services",
                    command="systemctl --user restart pipewire pipewire-pulse",
                )
            )
        if snapshot.broken_pipe_in_logs:
            results.append(
                _audio(
                    Severity.CRITICAL,
                    "PipeWire has 'Broken pipe' errors in logs",
                    fix="Restart PipeWire and check configuration",
                    command="systemctl --user restart pipewire pipewire-pulse wireplumber",
                )
            )

    if not snapshot.default_sink:
        results.append(
            _audio(Severity.WARNING, "No default audio output device set", fix="Set a default audio output device")
        )
    else:
        if snapshot.default_sink_muted:
            results.append(
                _audio(
                    Severity.CRITICAL,
                    "Audio muted",
                    fix="Unmute audio",
                    command="pactl set-sink-mute @DEFAULT_SINK@ 0",
                )
            )
        if snapshot.default_sink_volume is not None and snapshot.default_sink_volume < LOW_VOLUME_PERCENT:
            results.append(
                _audio(
                    Severity.WARNING,
                    f"Output volume is low: {snapshot.default_sink_volume}%",
                    fix="Raise output volume to 80%",
                    command="pactl set-sink-volume @DEFAULT_SINK@ 80%",
                )
            )

    if snapshot.default_source_muted:
        results.append(
            _audio(
                Severity.WARNING,
                "Microphone muted",
                fix="Unmute default input device",
                command="pactl set-source-mute @DEFAULT_SOURCE@ 0",
            )
        )

    return results


def diagnose_video(snapshot: VideoSnapshot) -> List[DiagnosticResult]:
    results: List[DiagnosticResult] = []

    if not snapshot.vaapi_available:
        results.append(
            _video(Severity.WARNING, "VA-API not available or not working", fix="Install VA-API drivers for your GPU")
        )
    elif snapshot.va_profiles:
        results.append(_video(Severity.SUCCESS, f"VA-API available with {len(snapshot.va_profiles)} profiles"))

    if snapshot.nvidia_present:
        results.append(_video(Severity.INFO, "NVIDIA GPU detected"))
        if snapshot.nvenc_encoders:
            results.append(_video(Severity.SUCCESS, "NVIDIA NVENC hardware encoding available"))

    if snapshot.ffmpeg_installed:
        results.append(_video(Severity.SUCCESS, "FFmpeg is installed"))
    else:
        results.append(
            _video(
                Severity.CRITICAL,
                "FFmpeg is not installed",
                fix="Install FFmpeg for video processing",
                command="sudo apt install ffmpeg",
            )
        )

    results.append(_video(Severity.INFO, f"Display server: {snapshot.display_server}"))

    if snapshot.capture_devices:
        results.append(_video(Severity.INFO, f"Found {len(snapshot.capture_devices)} video capture device(s)"))

    return results


def diagnose_gpu(snapshot: GpuSnapshot) -> List[DiagnosticResult]:
    results: List[DiagnosticResult] = []

    if snapshot.nvidia_gpus:
        results.append(_gpu(Severity.INFO, f"Found {len(snapshot.nvidia_gpus)} NVIDIA GPU(s)"))
        if snapshot.nvidia_driver_ok:
            results.append(_gpu(Severity.SUCCESS, "NVIDIA driver is working"))
            if snapshot.utilization_percent is not None and snapshot.utilization_percent > HIGH_GPU_UTILIZATION:
                results.append(_gpu(Severity.WARNING, f"GPU utilization is high: {snapshot.utilization_percent}%"))
        else:
            results.append(
                _gpu(Severity.CRITICAL, "NVIDIA driver not working properly", fix="Reinstall or update NVIDIA drivers")
            )
        if snapshot.cuda_version:
            results.append(_gpu(Severity.SUCCESS, f"CUDA toolkit {snapshot.cuda_version} installed"))
        else:
            results.append(
                _gpu(Severity.WARNING, "CUDA toolkit not installed", fix="Install CUDA toolkit for development")
            )
        return results

    if snapshot.has_amd:
        results.append(_gpu(Severity.INFO, "AMD GPU detected"))
        if snapshot.amdgpu_loaded:
            results.append(_gpu(Severity.SUCCESS, "AMD GPU driver loaded"))
        else:
            results.append(
                _gpu(
                    Severity.WARNING,
                    "AMD GPU driver (amdgpu) is not loaded",
                    fix="Load the amdgpu kernel module",
                    command="sudo modprobe amdgpu",
                )
            )
    elif snapshot.has_intel:
        results.append(_gpu(Severity.INFO, "Intel integrated GPU detected"))

    return results


def diagnose_system(snapshot: ResourceSnapshot) -> List[DiagnosticResult]:
    results: List[DiagnosticResult] = []

    if snapshot.cpu_percent > HIGH_CPU_PERCENT:
        results.append(_system(Severity.WARNING, f"High CPU usage: {snapshot.cpu_percent:.1f}%"))
    else:
        results.append(_system(Severity.SUCCESS, f"CPU usage normal: {snapshot.cpu_percent:.1f}%"))

    if snapshot.memory_percent > HIGH_MEMORY_PERCENT:
        results.append(_system(Severity.WARNING, f"High memory usage: {snapshot.memory_percent:.1f}%"))
    else:
        results.append(_system(Severity.SUCCESS, f"Memory usage OK: {snapshot.memory_percent:.1f}%"))

    for name in snapshot.av_processes:
        results.append(_system(Severity.INFO, f"{name} is running"))

    return results


def diagnose_network(snapshot: NetworkSnapshot) -> List[DiagnosticResult]:
    results: List[DiagnosticResult] = []

    if snapshot.interfaces:
        results.append(_network(Severity.INFO, f"Found {len(snapshot.interfaces)} network interface(s)"))

    if snapshot.internet_reachable is None:
        results.append(_network(Severity.INFO, "Could not test internet connectivity: ping not available"))
    elif snapshot.internet_reachable:
        results.append(_network(Severity.SUCCESS, "Internet connectivity OK"))
    else:
        results.append(
            _network(
                Severity.WARNING,
                "Internet connectivity issues detected",
                fix=f"Check network connection and DNS (could not reach {snapshot.ping_host})",
            )
        )

    if snapshot.ffmpeg_available:
        results.append(_network(Severity.SUCCESS, "FFmpeg available for streaming"))

    return results


def _audio(severity: Severity, message: str, **kwargs: str) -> DiagnosticResult:
    return DiagnosticResult(Category.AUDIO, severity, message, **kwargs)


def _video(severity: Severity, message: str, **kwargs: str) -> DiagnosticResult:
    return DiagnosticResult(Category.VIDEO, severity, message, **kwargs)


def _gpu(severity: Severity, message: str, **kwargs: str) -> DiagnosticResult:
    return DiagnosticResult(Category.GPU, severity, message, **kwargs)


def _system(severity: Severity, message: str, **kwargs: str) -> DiagnosticResult:
    return DiagnosticResult(Category.SYSTEM, severity, message, **kwargs)


def _network(severity: Severity, message: str, **kwargs: str) -> DiagnosticResult:
    return DiagnosticResult(Category.NETWORK, severity, message, **kwargs)
