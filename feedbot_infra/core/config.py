"""Immutable pipeline configuration populated once from the environment.

Non-secret settings may also come from a YAML file and ``key=value``
overrides; the CI environment always wins for the variables it defines.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError, field_validator

from feedbot_infra.tags import resolve_tag

from .exceptions import ConfigurationError

ENV_REGISTRY = "ECR_NAME"
ENV_REGION = "AWS_DEFAULT_REGION"
ENV_REVISION = "CODEBUILD_RESOLVED_SOURCE_VERSION"
ENV_DOCKER_USERNAME = "DOCKER_USERNAME"
ENV_DOCKER_TOKEN = "DOCKER_TOKEN"

REQUIRED_ENV = (ENV_REGISTRY, ENV_REGION, ENV_REVISION)
_REQUIRED_SETTINGS = (ENV_REGISTRY, ENV_REGION)

_ENV_FIELDS: Dict[str, str] = {
    ENV_REGISTRY: "registry",
    ENV_REGION: "region",
    ENV_REVISION: "revision",
    ENV_DOCKER_USERNAME: "docker_username",
    ENV_DOCKER_TOKEN: "docker_token",
}

# Keys a config file or override may set.
FILE_KEYS = frozenset({"dockerfile", "context", "source_registry", "docker_bin", "aws_bin"})


class PipelineConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    registry: str
    region: str
    revision: str
    docker_username: Optional[str] = None
    docker_token: Optional[SecretStr] = None
    source_registry: Optional[str] = None
    dockerfile: Path = Path("Dockerfile")
    context: Path = Path(".")
    docker_bin: str = "docker"
    aws_bin: str = "aws"

    @field_validator("registry")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("registry must not be empty")
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **settings: Any) -> "PipelineConfig":
        """Build a config from environment variables plus extra settings."""
        env = os.environ if environ is None else environ
        missing = [name for name in _REQUIRED_SETTINGS if not (env.get(name) or "").strip()]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                step="LoadConfig",
                metadata={"missing": missing},
            )
        # Raises InvalidRevision for an absent revision.
        resolve_tag(env.get(ENV_REVISION))

        payload: Dict[str, Any] = dict(settings)
        for env_name, field_name in _ENV_FIELDS.items():
            value = env.get(env_name) or ""
            if env_name != ENV_REVISION:
                value = value.strip()
            if value:
                payload[field_name] = value
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid pipeline configuration: {exc}", step="LoadConfig") from exc

    @property
    def image_tag(self) -> str:
        return resolve_tag(self.revision)

    @property
    def has_source_credentials(self) -> bool:
        token = self.docker_token.get_secret_value() if self.docker_token else ""
        return bool(self.docker_username) and bool(token)

    def describe(self) -> Dict[str, Any]:
        """Return a loggable view with secrets masked."""
        return {
            "registry": self.registry,
            "region": self.region,
            "revision": self.revision,
            "docker_username": self.docker_username,
            "docker_token": "***" if self.docker_token else None,
            "source_registry": self.source_registry,
            "dockerfile": str(self.dockerfile),
            "context": str(self.context),
        }


def _parse_override(override: str) -> Dict[str, Any]:
    if "=" not in override:
        raise ConfigurationError(f"Override '{override}' must be in key=value format", step="LoadConfig")
    key, raw_value = override.split("=", 1)
    try:
        value = json.loads(raw_value)
    except json.JSONDecodeError:
        value = raw_value
    return {key.strip(): value}


def _check_keys(payload: Mapping[str, Any], origin: str) -> None:
    unknown = sorted(set(payload) - FILE_KEYS)
    if unknown:
        raise ConfigurationError(
            f"Unsupported settings in {origin}: {', '.join(unknown)}. "
            f"Expected any of: {', '.join(sorted(FILE_KEYS))}",
            step="LoadConfig",
        )


def load_config(
    path: str | Path | None = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Iterable[str]] = None,
) -> PipelineConfig:
    """Read optional YAML settings and overrides, then the environment."""
    settings: Dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}", step="LoadConfig")
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
        if not isinstance(payload, Mapping):
            raise ConfigurationError(f"Config file {path} must contain a mapping", step="LoadConfig")
        _check_keys(payload, str(path))
        settings.update(payload)

    for override in overrides or []:
        parsed = _parse_override(override)
        _check_keys(parsed, "overrides")
        settings.update(parsed)

    return PipelineConfig.from_env(environ, **settings)


__all__ = ["FILE_KEYS", "PipelineConfig", "REQUIRED_ENV", "load_config"]
