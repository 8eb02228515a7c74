"""Bounded execution of external tools."""

from __future__ import annotations

import contextlib
import logging
import os
import signal
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

from .errors import CollectorError

logger = logging.getLogger(__name__)

SHELL = "/bin/bash"


class CommandStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    NOT_FOUND = "not_found"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class CommandResult:
    argv: List[str]
    status: CommandStatus
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.status is CommandStatus.OK

    def describe(self) -> str:
        """Short human reason for a non-successful command."""
        if self.status is CommandStatus.OK:
            return "ok"
        if self.status is CommandStatus.NOT_FOUND:
            return f"{self.argv[0]} not found"
        if self.status is CommandStatus.TIMED_OUT:
            return "timed out"
        detail = self.stderr.strip().splitlines()
        suffix = f": {detail[-1]}" if detail else ""
        return f"exit code {self.returncode}{suffix}"


def run_command(argv: Sequence[str], timeout: float = 5.0) -> CommandResult:
    """Run a read-only diagnostic command.

    A missing executable or a timeout is reported through the result status.
    Any other failure to start the process raises :class:`CollectorError`.
    """
    args = list(argv)
    logger.debug("Running %s", " ".join(args))
    try:
        return _execute(args, timeout)
    except (OSError, MemoryError) as exc:
        raise CollectorError(args, f"{type(exc).__name__}: {exc}") from exc


def run_shell(command: str, timeout: float) -> CommandResult:
    """Run a remediation command line through bash."""
    args = [SHELL, "-c", command]
    logger.debug("Running shell command %r", command)
    try:
        return _execute(args, timeout)
    except OSError as exc:
        return CommandResult(args, CommandStatus.FAILED, -1, "", f"{type(exc).__name__}: {exc}")


def _execute(args: List[str], timeout: float) -> CommandResult:
    try:
        proc = subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            start_new_session=True,
        )
    except FileNotFoundError:
        return CommandResult(args, CommandStatus.NOT_FOUND, 127)

    with proc:
        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            # Children of `bash -c` share its process group; kill them all.
            _kill_group(proc)
            stdout, stderr = proc.communicate()
            logger.debug("Timed out after %.1fs: %s", timeout, " ".join(args))
            return CommandResult(args, CommandStatus.TIMED_OUT, -1, _as_text(stdout), _as_text(stderr))
        except BaseException:
            _kill_group(proc)
            raise

    status = CommandStatus.OK if proc.returncode == 0 else CommandStatus.FAILED
    if status is CommandStatus.FAILED:
        logger.debug("Exit code %d from %s", proc.returncode, " ".join(args))
    return CommandResult(args, status, proc.returncode, stdout or "", stderr or "")


def _kill_group(proc: subprocess.Popen) -> None:
    with contextlib.suppress(ProcessLookupError):
        os.killpg(proc.pid, signal.SIGKILL)


def _as_text(data: object) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode(errors="replace")
    return str(data)
