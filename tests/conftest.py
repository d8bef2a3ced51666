from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from feedbot_infra.utils import ToolError, ToolOutput

PIPELINE_ENV = {
    "ECR_NAME": "123456789012.dkr.ecr.us-east-1.amazonaws.com",
    "AWS_DEFAULT_REGION": "us-east-1",
    "CODEBUILD_RESOLVED_SOURCE_VERSION": "deadbeefcafe0123456789",
    "DOCKER_USERNAME": "feedbot",
    "DOCKER_TOKEN": "dckr_pat_secret",
}


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "infra: marks infrastructure tests")


@dataclass
class Call:
    command: str
    args: Tuple[str, ...]
    input: Optional[str] = None
    capture: bool = False

    @property
    def line(self) -> str:
        return " ".join((self.command, *self.args))


@dataclass
class FakeToolRunner:
    """Record every invocation; fail any whose command line contains a marker."""

    fail_on: Dict[str, int] = field(default_factory=dict)
    stdout: Dict[str, str] = field(default_factory=dict)
    calls: List[Call] = field(default_factory=list)

    def run(self, command: str, args: Sequence[str], *, input: Optional[str] = None, capture: bool = False) -> ToolOutput:
        call = Call(command, tuple(args), input, capture)
        self.calls.append(call)
        for marker, returncode in self.fail_on.items():
            if marker in call.line:
                raise ToolError(command, tuple(args), returncode, f"{marker}: simulated failure")
        stdout = next((value for marker, value in self.stdout.items() if marker in call.line), "")
        return ToolOutput(command=command, args=tuple(args), stdout=stdout)

    def lines(self, subcommand: Optional[str] = None) -> List[str]:
        return [call.line for call in self.calls if subcommand is None or call.args[:1] == (subcommand,)]

    @property
    def pushes(self) -> List[str]:
        return [call.args[1] for call in self.calls if call.args[:1] == ("push",)]


@pytest.fixture
def pipeline_env(monkeypatch):
    """Set the CI environment the pipeline reads."""
    for key in ("ECR_NAME", "AWS_DEFAULT_REGION", "CODEBUILD_RESOLVED_SOURCE_VERSION", "DOCKER_USERNAME", "DOCKER_TOKEN"):
        monkeypatch.delenv(key, raising=False)
    for key, value in PIPELINE_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("CODEBUILD_BUILD_ID", raising=False)
    monkeypatch.delenv("CI", raising=False)
    return dict(PIPELINE_ENV)


@pytest.fixture
def fake_runner():
    return FakeToolRunner(stdout={"get-login-password": "ecr-token\n"})
