"""Collect audio, video, GPU, system and network state on a Linux workstation."""

from __future__ import annotations

import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import psutil

from .commands import CommandResult, CommandStatus, run_command
from .config import DiagnosticsConfig
from .models import UNKNOWN, SystemInfo

AV_PROCESSES = ("pipewire", "pulseaudio", "obs", "ffmpeg", "vlc")
PROC_MODULES = Path("/proc/modules")
OS_RELEASE = Path("/etc/os-release")
DEV_DIR = Path("/dev")


@dataclass
class AudioDevice:
    index: str
    name: str
    state: str


@dataclass
class AudioSnapshot:
    server: str
    service: str
    service_running: bool
    # None means pactl could not be queried; an empty list means no devices.
    sinks: Optional[List[AudioDevice]] = None
    sources: Optional[List[AudioDevice]] = None
    default_sink: Optional[str] = None
    default_sink_muted: Optional[bool] = None
    default_sink_volume: Optional[int] = None
    default_source_muted: Optional[bool] = None
    pipewire_dump_ok: Optional[bool] = None
    pipewire_reports_errors: bool = False
    broken_pipe_in_logs: bool = False


@dataclass
class VideoSnapshot:
    vaapi_available: bool
    va_profiles: List[str] = field(default_factory=list)
    nvidia_present: bool = False
    ffmpeg_installed: bool = False
    nvenc_encoders: List[str] = field(default_factory=list)
    display_server: str = "X11"
    capture_devices: List[str] = field(default_factory=list)


@dataclass
class GpuSnapshot:
    nvidia_gpus: List[str] = field(default_factory=list)
    nvidia_driver_ok: Optional[bool] = None
    utilization_percent: Optional[int] = None
    cuda_version: Optional[str] = None
    display_adapters: List[str] = field(default_factory=list)
    amdgpu_loaded: bool = False

    @property
    def has_amd(self) -> bool:
        return any(_is_amd(adapter) for adapter in self.display_adapters)

    @property
    def has_intel(self) -> bool:
        return any("intel" in adapter.lower() for adapter in self.display_adapters)


@dataclass
class ResourceSnapshot:
    cpu_percent: float
    cpu_count: int
    load_avg: Tuple[float, float, float]
    memory_total: int
    memory_used: int
    memory_percent: float
    av_processes: List[str] = field(default_factory=list)


@dataclass
class NetworkSnapshot:
    interfaces: List[str] = field(default_factory=list)
    ping_host: str = "8.8.8.8"
    # None when ping itself is unavailable.
    internet_reachable: Optional[bool] = None
    ffmpeg_available: bool = False


def collect_system_info(config: Optional[DiagnosticsConfig] = None) -> SystemInfo:
    """Capture the machine identity once per run."""
    cfg = config or DiagnosticsConfig()
    return SystemInfo(
        kernel=_output_or_unknown(["uname", "-r"], cfg),
        distro=_detect_distro(cfg),
        desktop=os.environ.get("XDG_CURRENT_DESKTOP") or UNKNOWN,
        audio_server=detect_audio_server(cfg),
        gpu_driver=detect_gpu_driver(cfg),
    )


def detect_audio_server(config: Optional[DiagnosticsConfig] = None) -> str:
    cfg = config or DiagnosticsConfig()
    if _run(["pgrep", "-x", "pipewire"], cfg).success:
        return "PipeWire"
    if _run(["pgrep", "-x", "pulseaudio"], cfg).success:
        return "PulseAudio"
    return UNKNOWN


def detect_gpu_driver(config: Optional[DiagnosticsConfig] = None) -> Optional[str]:
    cfg = config or DiagnosticsConfig()
    result = _run(["nvidia-smi", "--version"], cfg)
    if result.success:
        match = re.search(r"driver version\s*:?\s*([\d.]+)", result.stdout, re.IGNORECASE)
        return f"NVIDIA {match.group(1)}" if match else "NVIDIA"
    modules = _loaded_kernel_modules(cfg)
    for module in ("amdgpu", "radeon", "i915", "xe", "nouveau"):
        if module in modules:
            return module
    return None


def collect_audio(config: Optional[DiagnosticsConfig] = None) -> AudioSnapshot:
    cfg = config or DiagnosticsConfig()
    server = detect_audio_server(cfg)
    service = "pipewire" if server == "PipeWire" else "pulseaudio"
    snapshot = AudioSnapshot(
        server=server,
        service=service,
        service_running=_run(["systemctl", "--user", "is-active", "--quiet", service], cfg).success,
        sinks=_pactl_devices("sinks", cfg),
        sources=_pactl_devices("sources", cfg),
    )

    default_sink = _run(["pactl", "get-default-sink"], cfg)
    if default_sink.success and default_sink.stdout.strip():
        snapshot.default_sink = default_sink.stdout.strip()
        snapshot.default_sink_muted = _pactl_mute(["pactl", "get-sink-mute", "@DEFAULT_SINK@"], cfg)
        snapshot.default_sink_volume = _pactl_volume(cfg)
    snapshot.default_source_muted = _pactl_mute(["pactl", "get-source-mute", "@DEFAULT_SOURCE@"], cfg)

    if server == "PipeWire":
        dump = _run(["pw-dump"], cfg)
        snapshot.pipewire_dump_ok = dump.success
        snapshot.pipewire_reports_errors = dump.success and bool(re.search(r'"state":\s*"error"', dump.stdout))
        journal = _run(
            ["journalctl", "--user", "-u", "pipewire", "--since", "1 hour ago", "-n", "100", "--no-pager"],
            cfg,
        )
        snapshot.broken_pipe_in_logs = journal.success and "Broken pipe" in journal.stdout
    return snapshot


def collect_video(config: Optional[DiagnosticsConfig] = None) -> VideoSnapshot:
    cfg = config or DiagnosticsConfig()
    vainfo = _run(["vainfo"], cfg)
    profiles: List[str] = []
    if vainfo.success:
        profiles = _unique(re.findall(r"VAProfile\w+", vainfo.stdout))

    snapshot = VideoSnapshot(
        vaapi_available=vainfo.success,
        va_profiles=profiles,
        nvidia_present=_run(["nvidia-smi", "-L"], cfg).success,
        ffmpeg_installed=_run(["ffmpeg", "-version"], cfg).success,
        display_server="Wayland" if os.environ.get("WAYLAND_DISPLAY") else "X11",
        capture_devices=sorted(str(path) for path in DEV_DIR.glob("video*")),
    )
    if snapshot.nvidia_present and snapshot.ffmpeg_installed:
        encoders = _run(["ffmpeg", "-hide_banner", "-encoders"], cfg)
        if encoders.success:
            snapshot.nvenc_encoders = _unique(re.findall(r"\b(\w+_nvenc)\b", encoders.stdout))
    return snapshot


def collect_gpu(config: Optional[DiagnosticsConfig] = None) -> GpuSnapshot:
    cfg = config or DiagnosticsConfig()
    snapshot = GpuSnapshot()

    listing = _run(["nvidia-smi", "-L"], cfg)
    if listing.success:
        snapshot.nvidia_gpus = _non_empty_lines(listing.stdout)
        query = _run(
            ["nvidia-smi", "--query-gpu=utilization.gpu", "--format=csv,noheader,nounits"],
            cfg,
        )
        snapshot.nvidia_driver_ok = query.success
        if query.success:
            values = [int(value) for value in re.findall(r"\d+", query.stdout)]
            snapshot.utilization_percent = max(values) if values else None
        nvcc = _run(["nvcc", "--version"], cfg)
        if nvcc.success:
            match = re.search(r"release ([\d.]+)", nvcc.stdout)
            snapshot.cuda_version = match.group(1) if match else UNKNOWN
        return snapshot

    lspci = _run(["lspci", "-nn"], cfg)
    if lspci.success:
        snapshot.display_adapters = [
            line
            for line in _non_empty_lines(lspci.stdout)
            if any(kind in line for kind in ("VGA compatible controller", "3D controller", "Display controller"))
        ]
    if snapshot.has_amd:
        snapshot.amdgpu_loaded = "amdgpu" in _loaded_kernel_modules(cfg)
    return snapshot


def collect_system(config: Optional[DiagnosticsConfig] = None) -> ResourceSnapshot:
    memory = psutil.virtual_memory()
    load_avg = os.getloadavg() if hasattr(os, "getloadavg") else (0.0, 0.0, 0.0)
    return ResourceSnapshot(
        cpu_percent=psutil.cpu_percent(interval=0.3),
        cpu_count=psutil.cpu_count() or 0,
        load_avg=load_avg,
        memory_total=memory.total,
        memory_used=memory.used,
        memory_percent=memory.percent,
        av_processes=_running_av_processes(psutil.process_iter(["name"])),
    )


def collect_network(config: Optional[DiagnosticsConfig] = None) -> NetworkSnapshot:
    cfg = config or DiagnosticsConfig()
    interfaces = [name for name in psutil.net_if_addrs() if name != "lo"]
    ping = _run(["ping", "-c", "1", "-W", "2", cfg.ping_host], cfg)
    return NetworkSnapshot(
        interfaces=sorted(interfaces),
        ping_host=cfg.ping_host,
        internet_reachable=None if ping.status is CommandStatus.NOT_FOUND else ping.success,
        ffmpeg_available=shutil.which("ffmpeg") is not None,
    )


def _run(argv: Sequence[str], config: DiagnosticsConfig) -> CommandResult:
    return run_command(argv, timeout=config.command_timeout)


def _output_or_unknown(argv: Sequence[str], config: DiagnosticsConfig) -> str:
    result = _run(argv, config)
    output = result.stdout.strip() if result.success else ""
    return output or UNKNOWN


def _detect_distro(config: DiagnosticsConfig) -> str:
    distro = _output_or_unknown(["lsb_release", "-d", "-s"], config).strip('"')
    if distro != UNKNOWN:
        return distro
    try:
        content = OS_RELEASE.read_text(encoding="utf-8")
    except OSError:
        return UNKNOWN
    match = re.search(r'^PRETTY_NAME="?([^"\n]+)"?', content, re.MULTILINE)
    return match.group(1) if match else UNKNOWN


def _loaded_kernel_modules(config: DiagnosticsConfig) -> List[str]:
    try:
        content = PROC_MODULES.read_text(encoding="utf-8")
    except OSError:
        result = _run(["lsmod"], config)
        content = result.stdout if result.success else ""
    return [line.split()[0] for line in _non_empty_lines(content) if not line.startswith("Module ")]


def _pactl_devices(kind: str, config: DiagnosticsConfig) -> Optional[List[AudioDevice]]:
    result = _run(["pactl", "list", kind, "short"], config)
    if not result.success:
        return None
    devices: List[AudioDevice] = []
    for line in _non_empty_lines(result.stdout):
        columns = line.split("\t")
        name = columns[1] if len(columns) > 1 else ""
        # Monitor sources mirror sinks and are not real inputs.
        if kind == "sources" and name.endswith(".monitor"):
            continue
        state = columns[4].strip() if len(columns) > 4 else UNKNOWN
        devices.append(AudioDevice(index=columns[0].strip(), name=name, state=state))
    return devices


def _pactl_mute(argv: Sequence[str], config: DiagnosticsConfig) -> Optional[bool]:
    result = _run(argv, config)
    if not result.success:
        return None
    match = re.search(r"Mute:\s*(yes|no)", result.stdout)
    return match.group(1) == "yes" if match else None


def _pactl_volume(config: DiagnosticsConfig) -> Optional[int]:
    result = _run(["pactl", "get-sink-volume", "@DEFAULT_SINK@"], config)
    if not result.success:
        return None
    match = re.search(r"(\d+)%", result.stdout)
    return int(match.group(1)) if match else None


def _running_av_processes(processes: Iterable[psutil.Process]) -> List[str]:
    names = set()
    for proc in processes:
        try:
            names.add((proc.info.get("name") or "").lower())
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
    return [name for name in AV_PROCESSES if name in names]


def _is_amd(adapter: str) -> bool:
    lowered = adapter.lower()
    return "amd" in lowered or "advanced micro devices" in lowered or "[ati]" in lowered or " ati " in lowered


def _non_empty_lines(text: str) -> List[str]:
    return [line for line in text.strip().splitlines() if line.strip()]


def _unique(values: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen
