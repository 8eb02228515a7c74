"""Exception hierarchy for the diagnostic engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from .commands import CommandResult


class AVDoctorError(Exception):
    """Base class for all av-doctor errors."""


class CollectorError(AVDoctorError):
    """An external tool could not be invoked for reasons other than being absent."""

    def __init__(self, argv: Sequence[str], reason: str) -> None:
        self.argv = list(argv)
        self.reason = reason
        super().__init__(f"{' '.join(self.argv)}: {reason}")


class SchemaValidationError(AVDoctorError, ValueError):
    """A result or snapshot violates its category/severity/message constraints."""


class SubsystemDiagnosisError(AVDoctorError):
    """Raised inside one subsystem's collect+diagnose pipeline."""

    def __init__(self, subsystem: str, cause: BaseException) -> None:
        self.subsystem = subsystem
        self.cause = cause
        super().__init__(f"{subsystem} diagnostics failed: {type(cause).__name__}: {cause}")


class FixExecutionError(AVDoctorError):
    """A remediation command exited non-zero, timed out or could not start."""

    def __init__(self, command: str, reason: str, result: Optional["CommandResult"] = None) -> None:
        self.command = command
        self.reason = reason
        self.result = result
        super().__init__(reason)
