from typing import Dict, List, Union

import pytest

from av_doctor import system_state
from av_doctor.commands import CommandResult, CommandStatus

Response = Union[str, CommandResult]


class FakeRunner:
    """Stands in for run_command; unknown commands behave like missing tools."""

    def __init__(self, responses: Dict[str, Response]):
        self.responses = responses
        self.calls: List[List[str]] = []

    def __call__(self, argv, timeout=5.0):
        args = list(argv)
        self.calls.append(args)
        response = self.responses.get(" ".join(args))
        if response is None:
            return CommandResult(args, CommandStatus.NOT_FOUND, 127)
        if isinstance(response, CommandResult):
            return response
        return CommandResult(args, CommandStatus.OK, 0, response)


def failed(argv: str, code: int = 1) -> CommandResult:
    return CommandResult(argv.split(), CommandStatus.FAILED, code)


@pytest.fixture
def fake_commands(monkeypatch):
    def install(responses: Dict[str, Response]) -> FakeRunner:
        runner = FakeRunner(responses)
        monkeypatch.setattr(system_state, "run_command", runner)
        return runner

    return install
