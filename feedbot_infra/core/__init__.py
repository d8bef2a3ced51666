"""Shared configuration, logging and error types."""

from __future__ import annotations

from .config import PipelineConfig, load_config
from .exceptions import (
    AuthError,
    BuildError,
    ConfigurationError,
    InvalidRevision,
    PipelineError,
    PublishError,
)
from .logging import configure_logging, log_with_context, set_run_id

__all__ = [
    "AuthError",
    "BuildError",
    "ConfigurationError",
    "InvalidRevision",
    "PipelineConfig",
    "PipelineError",
    "PublishError",
    "configure_logging",
    "load_config",
    "log_with_context",
    "set_run_id",
]
