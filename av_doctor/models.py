"""Typed findings shared by collectors, rules, the reporter and remediation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from .errors import SchemaValidationError

UNKNOWN = "Unknown"


class Category(str, Enum):
    AUDIO = "audio"
    VIDEO = "video"
    SYSTEM = "system"
    GPU = "gpu"
    NETWORK = "network"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


def _coerce(enum_type: type, value: Union[str, Enum], field_name: str) -> Any:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise SchemaValidationError(f"invalid {field_name} {value!r}; expected one of: {allowed}") from None


@dataclass(frozen=True)
class DiagnosticResult:
    """One classified finding.

    ``category`` and ``severity`` accept either enum members or their string
    values; anything outside the closed sets, or a blank message, raises
    :class:`SchemaValidationError` at construction.
    """

    category: Category
    severity: Severity
    message: str
    fix: Optional[str] = None
    command: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", _coerce(Category, self.category, "category"))
        object.__setattr__(self, "severity", _coerce(Severity, self.severity, "severity"))
        if not isinstance(self.message, str) or not self.message.strip():
            raise SchemaValidationError("message must be a non-empty string")
        for name in ("fix", "command"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise SchemaValidationError(f"{name} must be a string or None, got {type(value).__name__}")

    @property
    def has_command(self) -> bool:
        return bool(self.command and self.command.strip())

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.fix is not None:
            payload["fix"] = self.fix
        if self.command is not None:
            payload["command"] = self.command
        return payload


@dataclass(frozen=True)
class SystemInfo:
    kernel: str
    distro: str
    desktop: str
    audio_server: str
    gpu_driver: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("kernel", "distro", "desktop", "audio_server"):
            if not isinstance(getattr(self, name), str):
                raise SchemaValidationError(f"{name} must be a string")
