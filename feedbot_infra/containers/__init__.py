"""Image target registry and build description helpers."""

from __future__ import annotations

from .dockerfile import BuildStage, CopyInstruction, contract_problems, parse_stages, read_stages
from .registry import LATEST_TAG, ContainerSpec, ImageTarget, available_containers, get_container

__all__ = [
    "BuildStage",
    "ContainerSpec",
    "CopyInstruction",
    "ImageTarget",
    "LATEST_TAG",
    "available_containers",
    "contract_problems",
    "get_container",
    "parse_stages",
    "read_stages",
]
