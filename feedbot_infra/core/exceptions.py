"""Exception hierarchy raised by the build/publish pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional


@dataclass(eq=False)
class PipelineError(RuntimeError):
    """Base error carrying the failing step and the tool's exit status."""

    message: str
    step: str = "pipeline"
    exit_code: Optional[int] = None
    output: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    code: ClassVar[str] = "pipeline_error"

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        detail = self.message
        if self.exit_code is not None:
            detail = f"{detail} (exit status {self.exit_code})"
        if self.output:
            detail = f"{detail}: {self.output.strip()}"
        return detail

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "step": self.step,
            "message": self.message,
            "exit_code": self.exit_code,
            "output": self.output,
        }


class ConfigurationError(PipelineError):
    code = "configuration_error"


class InvalidRevision(PipelineError):
    code = "invalid_revision"


class AuthError(PipelineError):
    code = "auth_error"


class BuildError(PipelineError):
    code = "build_error"


class PublishError(PipelineError):
    code = "publish_error"


__all__ = [
    "AuthError",
    "BuildError",
    "ConfigurationError",
    "InvalidRevision",
    "PipelineError",
    "PublishError",
]
