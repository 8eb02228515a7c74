import pytest

from av_doctor.errors import SchemaValidationError
from av_doctor.models import Category, DiagnosticResult, Severity, SystemInfo


@pytest.mark.parametrize("category", [c.value for c in Category])
@pytest.mark.parametrize("severity", [s.value for s in Severity])
def test_every_category_and_severity_pair_is_accepted(category, severity):
    result = DiagnosticResult(category, severity, f"{category} {severity}", fix="do it", command="true")
    assert result.category == Category(category)
    assert result.severity == Severity(severity)
    assert result.message == f"{category} {severity}"
    assert result.fix == "do it"
    assert result.command == "true"


def test_optional_fields_default_to_none():
    result = DiagnosticResult(Category.VIDEO, Severity.INFO, "Hardware acceleration available")
    assert result.fix is None
    assert result.command is None
    assert not result.has_command


@pytest.mark.parametrize("category", ["invalid", "Audio", "", "storage"])
def test_unknown_category_is_rejected(category):
    with pytest.raises(SchemaValidationError):
        DiagnosticResult(category, Severity.CRITICAL, "Test message")


@pytest.mark.parametrize("severity", ["invalid", "error", "CRITICAL", ""])
def test_unknown_severity_is_rejected(severity):
    with pytest.raises(SchemaValidationError):
        DiagnosticResult(Category.AUDIO, severity, "Test message")


@pytest.mark.parametrize("message", ["", "   ", "\n"])
def test_blank_message_is_rejected(message):
    with pytest.raises(SchemaValidationError):
        DiagnosticResult(Category.AUDIO, Severity.INFO, message)


def test_schema_error_is_a_value_error():
    with pytest.raises(ValueError):
        DiagnosticResult("audio", "fatal", "x")


def test_blank_command_is_not_fixable():
    result = DiagnosticResult(Category.AUDIO, Severity.WARNING, "Odd", fix="Manual", command="  ")
    assert not result.has_command


def test_to_dict_omits_missing_optionals():
    result = DiagnosticResult("gpu", "warning", "CUDA toolkit not installed", fix="Install CUDA toolkit")
    assert result.to_dict() == {
        "category": "gpu",
        "severity": "warning",
        "message": "CUDA toolkit not installed",
        "fix": "Install CUDA toolkit",
    }


def test_result_is_immutable():
    result = DiagnosticResult("audio", "info", "x")
    with pytest.raises(AttributeError):
        result.message = "y"


def test_system_info_without_gpu_driver():
    info = SystemInfo(kernel="6.8.0-71-generic", distro="Ubuntu 24.04 LTS", desktop="GNOME", audio_server="PulseAudio")
    assert info.audio_server == "PulseAudio"
    assert info.gpu_driver is None


def test_system_info_rejects_non_string_fields():
    with pytest.raises(SchemaValidationError):
        SystemInfo(kernel=None, distro="Ubuntu", desktop="KDE", audio_server="PipeWire")
