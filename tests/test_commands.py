import pytest

from av_doctor.commands import CommandStatus, run_command, run_shell
from av_doctor.errors import CollectorError


def test_successful_command_captures_output():
    result = run_command(["echo", "hello"])
    assert result.status is CommandStatus.OK
    assert result.success
    assert result.stdout == "hello\n"
    assert result.describe() == "ok"


def test_non_zero_exit_is_failed_not_raised():
    result = run_command(["false"])
    assert result.status is CommandStatus.FAILED
    assert result.returncode == 1
    assert not result.success


def test_missing_tool_is_not_found():
    result = run_command(["av-doctor-no-such-tool-xyz", "--version"])
    assert result.status is CommandStatus.NOT_FOUND
    assert result.describe() == "av-doctor-no-such-tool-xyz not found"


def test_slow_tool_times_out():
    result = run_command(["sleep", "5"], timeout=0.2)
    assert result.status is CommandStatus.TIMED_OUT
    assert result.describe() == "timed out"


def test_unexpected_spawn_failure_raises_collector_error(tmp_path):
    script = tmp_path / "not-executable"
    script.write_text("#!/bin/sh\necho hi\n")
    script.chmod(0o644)
    with pytest.raises(CollectorError) as excinfo:
        run_command([str(script)])
    assert excinfo.value.argv == [str(script)]


def test_shell_command_reports_exit_code_and_stderr():
    result = run_shell("echo broken >&2; exit 4", timeout=5)
    assert result.status is CommandStatus.FAILED
    assert result.returncode == 4
    assert result.describe() == "exit code 4: broken"


def test_shell_command_timeout():
    result = run_shell("sleep 5", timeout=0.2)
    assert result.status is CommandStatus.TIMED_OUT
