"""Command execution for the external build, registry and cloud tools."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, Sequence, Tuple

LOGGER = logging.getLogger(__name__)

REDACTED = "***"
_SECRET_FLAGS = frozenset({"--password", "-p"})


def render_command(command: str, args: Sequence[str]) -> str:
    """Render a command line for logs with password arguments masked."""
    parts = [command]
    hide_next = False
    for arg in args:
        if hide_next:
            parts.append(REDACTED)
            hide_next = False
            continue
        if arg in _SECRET_FLAGS:
            hide_next = True
        elif arg.startswith("--password="):
            arg = f"--password={REDACTED}"
        parts.append(arg)
    return " ".join(parts)


@dataclass(frozen=True)
class ToolOutput:
    command: str
    args: Tuple[str, ...]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""

    @property
    def display(self) -> str:
        return render_command(self.command, self.args)


@dataclass(eq=False)
class ToolError(RuntimeError):
    """Raised when an external tool is missing or exits non-zero."""

    command: str
    args: Tuple[str, ...] = field(default_factory=tuple)
    returncode: int = 1
    stderr: str = ""

    def __post_init__(self) -> None:
        super().__init__(f"{render_command(self.command, self.args)} exited with status {self.returncode}")


class ToolRunner(Protocol):
    """Capability to invoke an external command and wait for it."""

    def run(
        self,
        command: str,
        args: Sequence[str],
        *,
        input: Optional[str] = None,
        capture: bool = False,
    ) -> ToolOutput: ...


class SubprocessToolRunner:
    """Run tools as child processes, streaming their output to the CI log.

    ``capture=True`` collects stdout and stderr instead (used for short-lived
    tokens and anything whose failure text must be reported).
    """

    def __init__(self, *, cwd: Optional[Path] = None) -> None:
        self.cwd = cwd

    def run(
        self,
        command: str,
        args: Sequence[str],
        *,
        input: Optional[str] = None,
        capture: bool = False,
    ) -> ToolOutput:
        argv = (command, *args)
        LOGGER.info("[tool] $ %s", render_command(command, args))
        try:
            completed = subprocess.run(
                list(argv),
                cwd=self.cwd,
                input=input,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.PIPE if capture else None,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolError(command, tuple(args), 127, f"{command}: command not found") from exc
        except OSError as exc:
            raise ToolError(command, tuple(args), 126, f"{command}: {exc}") from exc

        if completed.stderr:
            LOGGER.debug("[tool] %s stderr: %s", command, completed.stderr.strip())
        if completed.returncode != 0:
            raise ToolError(command, tuple(args), completed.returncode, completed.stderr or "")
        return ToolOutput(
            command=command,
            args=tuple(args),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


class DryRunToolRunner:
    """Log each command instead of running it."""

    placeholder_output = "dry-run"

    def __init__(self) -> None:
        self.history: list[ToolOutput] = []

    def run(
        self,
        command: str,
        args: Sequence[str],
        *,
        input: Optional[str] = None,
        capture: bool = False,
    ) -> ToolOutput:
        output = ToolOutput(
            command=command,
            args=tuple(args),
            stdout=self.placeholder_output if capture else "",
        )
        LOGGER.info("[dry-run] $ %s", output.display)
        self.history.append(output)
        return output


__all__ = [
    "DryRunToolRunner",
    "SubprocessToolRunner",
    "ToolError",
    "ToolOutput",
    "ToolRunner",
    "render_command",
]
