from pathlib import Path

import pytest

from av_doctor.config import DEFAULT_FIX_SCRIPT, DiagnosticsConfig, load_config


def test_defaults_without_environment():
    config = load_config({})
    assert config == DiagnosticsConfig()
    assert config.fix_script_path == DEFAULT_FIX_SCRIPT == Path("/tmp/av-fixes.sh")
    assert config.concurrent is False


def test_environment_overrides():
    config = load_config(
        {
            "AV_DOCTOR_COMMAND_TIMEOUT": "2.5",
            "AV_DOCTOR_FIX_TIMEOUT": "30",
            "AV_DOCTOR_FIX_SCRIPT": "/home/me/fixes.sh",
            "AV_DOCTOR_PING_HOST": "1.1.1.1",
            "AV_DOCTOR_CONCURRENT": "yes",
            "AV_DOCTOR_PLAYBACK_TESTS": "0",
        }
    )
    assert config.command_timeout == 2.5
    assert config.fix_timeout == 30.0
    assert config.fix_script_path == Path("/home/me/fixes.sh")
    assert config.ping_host == "1.1.1.1"
    assert config.concurrent is True
    assert config.playback_tests is False


@pytest.mark.parametrize("value", ["soon", "0", "-1"])
def test_invalid_timeout_is_rejected(value):
    with pytest.raises(ValueError, match="AV_DOCTOR_COMMAND_TIMEOUT"):
        load_config({"AV_DOCTOR_COMMAND_TIMEOUT": value})


def test_with_overrides_ignores_none():
    config = DiagnosticsConfig().with_overrides(command_timeout=None, ping_host="9.9.9.9")
    assert config.command_timeout == 5.0
    assert config.ping_host == "9.9.9.9"
