"""Inspect the stages declared by a multi-stage Dockerfile."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .registry import ContainerSpec

BOOTSTRAP = "bootstrap"

_FROM_RE = re.compile(r"^FROM\s+(?P<rest>.+)$", re.IGNORECASE)
_COPY_RE = re.compile(r"^COPY\s+(?P<rest>.+)$", re.IGNORECASE)


@dataclass(frozen=True)
class CopyInstruction:
    sources: Tuple[str, ...]
    destination: str
    from_stage: Optional[str] = None


@dataclass(frozen=True)
class BuildStage:
    index: int
    base: str
    name: Optional[str] = None
    copies: Tuple[CopyInstruction, ...] = ()

    def bootstrap_copy(self) -> Optional[CopyInstruction]:
        """Return the COPY that installs the runtime entry point, if any."""
        for copy in self.copies:
            if posixpath.basename(copy.destination.rstrip("/")) == BOOTSTRAP:
                return copy
        return None


def _logical_lines(text: str) -> Iterator[str]:
    buffer = ""
    for raw in text.splitlines():
        line = raw.strip()
        if not buffer and line.startswith("#"):
            continue
        if line.endswith("\\"):
            buffer += line[:-1] + " "
            continue
        yield (buffer + line).strip()
        buffer = ""
    if buffer.strip():
        yield buffer.strip()


def _parse_copy(rest: str) -> Optional[CopyInstruction]:
    from_stage = None
    paths: List[str] = []
    for token in rest.split():
        if token.lower().startswith("--from="):
            from_stage = token.split("=", 1)[1]
        elif not token.startswith("--"):
            paths.append(token)
    if len(paths) < 2:
        return None
    return CopyInstruction(sources=tuple(paths[:-1]), destination=paths[-1], from_stage=from_stage)


def parse_stages(text: str) -> List[BuildStage]:
    stages: List[BuildStage] = []
    current: Optional[BuildStage] = None
    copies: List[CopyInstruction] = []

    def close() -> None:
        if current is not None:
            stages.append(BuildStage(current.index, current.base, current.name, tuple(copies)))

    for line in _logical_lines(text):
        match = _FROM_RE.match(line)
        if match:
            tokens = [token for token in match.group("rest").split() if not token.startswith("--")]
            if not tokens:
                continue
            close()
            name = None
            if len(tokens) >= 3 and tokens[1].lower() == "as":
                name = tokens[2]
            current = BuildStage(index=len(stages), base=tokens[0], name=name)
            copies = []
            continue
        match = _COPY_RE.match(line)
        if match and current is not None:
            copy = _parse_copy(match.group("rest"))
            if copy is not None:
                copies.append(copy)
    close()
    return stages


def read_stages(path: Path) -> List[BuildStage]:
    """Parse the ``FROM`` and ``COPY`` instructions of the Dockerfile at ``path``."""
    if not path.exists():
        raise FileNotFoundError(f"Build description not found: {path}")
    return parse_stages(path.read_text(encoding="utf-8"))


def contract_problems(path: Path, specs: Iterable[ContainerSpec]) -> List[str]:
    """Return every way ``path`` breaks the two-target build contract.

    Each target needs its own stage that copies ``target/release/<binary>``
    from an earlier stage to ``bootstrap``, and all targets share one base
    image.
    """
    stages = read_stages(path)
    by_name: Dict[str, BuildStage] = {stage.name.lower(): stage for stage in stages if stage.name}
    problems: List[str] = []
    bases: Dict[str, str] = {}

    for spec in specs:
        stage = by_name.get(spec.stage.lower())
        if stage is None:
            problems.append(f"does not declare build stage '{spec.stage}'")
            continue
        bases[spec.stage] = stage.base

        copy = stage.bootstrap_copy()
        if copy is None:
            problems.append(f"stage '{spec.stage}' does not copy a binary to {BOOTSTRAP}")
            continue
        source_stage = by_name.get((copy.from_stage or "").lower())
        if source_stage is None and (copy.from_stage or "").isdigit():
            index = int(copy.from_stage or "0")
            source_stage = stages[index] if index < len(stages) else None
        if source_stage is None or source_stage.index >= stage.index:
            problems.append(
                f"stage '{spec.stage}' copies {BOOTSTRAP} from unknown build stage '{copy.from_stage}'"
            )
        binary = posixpath.basename(copy.sources[-1].rstrip("/"))
        if binary != spec.binary:
            problems.append(
                f"stage '{spec.stage}' packages '{binary}' as {BOOTSTRAP}, expected '{spec.binary}'"
            )

    if len(set(bases.values())) > 1:
        listed = ", ".join(f"{stage}={base}" for stage, base in bases.items())
        problems.append(f"target stages use different base images: {listed}")
    return problems


__all__ = ["BOOTSTRAP", "BuildStage", "CopyInstruction", "contract_problems", "parse_stages", "read_stages"]
