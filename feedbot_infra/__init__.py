"""Build, tag and publish helpers for the bsky-feed-bot container images."""

from __future__ import annotations

from feedbot_infra.core import (
    AuthError,
    BuildError,
    ConfigurationError,
    InvalidRevision,
    PipelineConfig,
    PipelineError,
    PublishError,
    configure_logging,
    load_config,
)
from feedbot_infra.containers import ContainerSpec, ImageTarget, available_containers, get_container
from feedbot_infra.pipeline import PipelineExecutor, PipelineRun, build_pipeline, run_pipeline
from feedbot_infra.tags import TAG_LENGTH, resolve_tag
from feedbot_infra.utils import DryRunToolRunner, SubprocessToolRunner, ToolError, ToolOutput, ToolRunner

__all__ = [
    "AuthError",
    "BuildError",
    "ConfigurationError",
    "ContainerSpec",
    "DryRunToolRunner",
    "ImageTarget",
    "InvalidRevision",
    "PipelineConfig",
    "PipelineError",
    "PipelineExecutor",
    "PipelineRun",
    "PublishError",
    "SubprocessToolRunner",
    "TAG_LENGTH",
    "ToolError",
    "ToolOutput",
    "ToolRunner",
    "available_containers",
    "build_pipeline",
    "configure_logging",
    "get_container",
    "load_config",
    "resolve_tag",
    "run_pipeline",
]
