import stat
import time

import pytest

from av_doctor.commands import CommandResult, CommandStatus
from av_doctor.models import DiagnosticResult
from av_doctor.remediation import (
    FixStatus,
    apply_fixes,
    build_fix_script,
    export_fixes,
    manual_fixes,
)


def fix(command=None, message="Something is off", fix_text=None, category="audio", severity="warning"):
    return DiagnosticResult(category, severity, message, fix=fix_text, command=command)


def test_apply_fixes_on_empty_list():
    assert apply_fixes([]) == []


@pytest.mark.parametrize("failing_index", [0, 1, 3])
def test_one_failing_fix_does_not_stop_the_batch(tmp_path, failing_index):
    results = []
    for index in range(4):
        command = f"touch {tmp_path}/ran-{index}"
        if index == failing_index:
            command += " && exit 3"
        results.append(fix(command, message=f"finding {index}"))

    outcomes = apply_fixes(results, timeout=10)

    assert len(outcomes) == 4
    assert [outcome.index for outcome in outcomes] == [0, 1, 2, 3]
    assert [outcome.failed for outcome in outcomes] == [index == failing_index for index in range(4)]
    assert outcomes[failing_index].reason == f"fix {failing_index + 1} failed: exit code 3"
    for index in range(4):
        assert (tmp_path / f"ran-{index}").exists()


def test_results_without_command_are_skipped():
    results = [
        fix(None, fix_text="Check hardware connections and drivers"),
        fix(None),
        fix("true"),
    ]
    outcomes = apply_fixes(results, timeout=10)

    assert [outcome.status for outcome in outcomes] == [FixStatus.SKIPPED, FixStatus.SKIPPED, FixStatus.APPLIED]
    assert outcomes[0].reason == "no command; manual fix: Check hardware connections and drivers"
    assert outcomes[1].reason == "no command"
    assert outcomes[2].reason is None


def test_hung_fix_times_out_and_batch_continues(tmp_path):
    results = [fix("sleep 5"), fix(f"touch {tmp_path}/after")]
    outcomes = apply_fixes(results, timeout=0.3)

    assert outcomes[0].status is FixStatus.FAILED
    assert outcomes[0].reason == "fix 1 failed: timed out"
    assert outcomes[1].status is FixStatus.APPLIED
    assert (tmp_path / "after").exists()


def test_timed_out_fix_leaves_no_background_work(tmp_path):
    marker = tmp_path / "late"
    outcomes = apply_fixes([fix(f"(sleep 1; touch {marker}) && true")], timeout=0.3)
    time.sleep(1.5)

    assert outcomes[0].reason == "fix 1 failed: timed out"
    assert not marker.exists()


def test_runner_exception_is_recorded_not_raised():
    calls = []

    def runner(command, timeout):
        calls.append(command)
        if command == "explode":
            raise RuntimeError("runner bug")
        return CommandResult(["bash", "-c", command], CommandStatus.OK, 0)

    outcomes = apply_fixes([fix("explode"), fix("fine")], runner=runner)
    assert calls == ["explode", "fine"]
    assert outcomes[0].failed
    assert "RuntimeError: runner bug" in outcomes[0].reason
    assert outcomes[1].status is FixStatus.APPLIED


def test_missing_shell_is_a_failed_outcome():
    def runner(command, timeout):
        return CommandResult(["/bin/bash"], CommandStatus.NOT_FOUND, 127)

    outcomes = apply_fixes([fix("true")], runner=runner)
    assert outcomes[0].reason == "fix 1 failed: /bin/bash not found"


def test_timeout_is_passed_to_runner():
    seen = []

    def runner(command, timeout):
        seen.append(timeout)
        return CommandResult(["bash"], CommandStatus.OK, 0)

    apply_fixes([fix("a"), fix("b")], timeout=7.5, runner=runner)
    assert seen == [7.5, 7.5]


def test_cancellation_skips_remaining_fixes():
    ran = []

    def runner(command, timeout):
        ran.append(command)
        return CommandResult(["bash"], CommandStatus.OK, 0)

    budget = iter([True, False])
    outcomes = apply_fixes(
        [fix("first"), fix("second"), fix("third")],
        runner=runner,
        should_continue=lambda: next(budget, False),
    )
    assert ran == ["first"]
    assert [outcome.status for outcome in outcomes] == [FixStatus.APPLIED, FixStatus.SKIPPED, FixStatus.SKIPPED]
    assert outcomes[2].reason == "cancelled before start"


def test_toggle_fix_applied_twice_flips_back(tmp_path):
    flag = tmp_path / "muted"
    toggle = fix(f"if [ -e {flag} ]; then rm {flag}; else touch {flag}; fi", message="Audio muted")

    first = apply_fixes([toggle], timeout=10)
    assert first[0].status is FixStatus.APPLIED
    assert flag.exists()

    second = apply_fixes([toggle], timeout=10)
    assert second[0].status is FixStatus.APPLIED
    assert not flag.exists()


def test_export_contains_commands_and_skips_commandless(tmp_path):
    r1 = fix("pactl set-sink-mute @DEFAULT_SINK@ 0", message="Audio muted", fix_text="Unmute audio")
    r2 = fix(None, message="No audio input devices found")
    path = export_fixes([r1, r2], tmp_path / "av-fixes.sh")

    text = path.read_text()
    assert text.startswith("#!/bin/bash\n")
    assert "pactl set-sink-mute @DEFAULT_SINK@ 0\n" in text
    assert "No audio input devices found" not in text
    assert stat.S_IMODE(path.stat().st_mode) == 0o755


def test_export_script_layout_is_deterministic():
    results = [
        fix("systemctl --user start pipewire", message="pipewire service is not running", severity="critical"),
        fix("sudo apt install ffmpeg", message="FFmpeg is not\ninstalled", category="video", severity="critical"),
    ]
    script = build_fix_script(results)
    assert script == build_fix_script(results)
    assert script.splitlines()[-4:] == [
        "# [audio/critical] pipewire service is not running",
        "systemctl --user start pipewire",
        "# [video/critical] FFmpeg is not installed",
        "sudo apt install ffmpeg",
    ]


def test_export_empty_list_writes_header_only(tmp_path):
    path = export_fixes([], tmp_path / "av-fixes.sh")
    lines = path.read_text().splitlines()
    assert lines[0] == "#!/bin/bash"
    assert all(not line or line.startswith("#") for line in lines)


def test_export_empty_list_to_unwritable_path_does_not_raise(tmp_path):
    assert export_fixes([], tmp_path / "missing-dir" / "av-fixes.sh") is None
    assert export_fixes([], tmp_path) is None


def test_export_with_commands_to_unwritable_path_raises(tmp_path):
    with pytest.raises(OSError):
        export_fixes([fix("true")], tmp_path / "missing-dir" / "av-fixes.sh")


def test_exported_script_runs(tmp_path):
    marker = tmp_path / "fixed"
    path = export_fixes([fix(f"touch {marker}")], tmp_path / "av-fixes.sh")
    outcomes = apply_fixes([fix(f"bash {path}")], timeout=10)
    assert outcomes[0].status is FixStatus.APPLIED
    assert marker.exists()


def test_manual_fixes_lists_descriptions_without_commands():
    described = fix(None, fix_text="Install VA-API drivers for your GPU")
    results = [described, fix("true", fix_text="Run it"), fix(None)]
    assert manual_fixes(results) == [described]
