"""Logging configuration with structured JSON support and a per-run id."""

from __future__ import annotations

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

LOG_FILENAME = "feedbot-publish.log"
PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Image tag of the run in progress
_RUN_ID: ContextVar[str] = ContextVar("run_id", default="")


class JsonFormatter(logging.Formatter):
    """Format logs as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "lineno": record.lineno,
            "run_id": _RUN_ID.get(),
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_context"):
            payload.update(record.extra_context)  # type: ignore[attr-defined]

        return json.dumps(payload)


def set_run_id(run_id: str) -> None:
    """Tag every subsequent record in this context with ``run_id``."""
    _RUN_ID.set(run_id)


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    json_logs: bool = False,
) -> None:
    """Configure global logging."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / LOG_FILENAME))

    formatter: logging.Formatter = JsonFormatter() if json_logs else logging.Formatter(PLAIN_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=level.upper(),
        handlers=handlers,
        force=True,
    )


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    *,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    extra_context = {"extra_context": extra or {}}
    logger.log(getattr(logging, level.upper()), message, extra=extra_context)


def in_ci() -> bool:
    """Return True when running under CodeBuild or a generic CI runner."""
    return bool(os.environ.get("CODEBUILD_BUILD_ID")) or os.environ.get("CI", "") == "true"


__all__ = [
    "JsonFormatter",
    "configure_logging",
    "in_ci",
    "log_with_context",
    "set_run_id",
]
