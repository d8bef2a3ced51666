"""Build, authenticate and push helpers for the feed bot images.

Every helper takes a :class:`~feedbot_infra.utils.ToolRunner` so the same code
drives real tools, dry runs and tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from feedbot_infra.containers import ContainerSpec
from feedbot_infra.utils import ToolOutput, ToolRunner


def build_args(
    spec: ContainerSpec,
    refs: Sequence[str],
    *,
    dockerfile: Path,
    context: Path,
) -> List[str]:
    """Return ``docker build`` arguments selecting the spec's stage.

    Args:
        spec: Target whose Dockerfile stage is built.
        refs: Image references applied with ``-t``, in order.
        dockerfile: Build description file.
        context: Build context directory.
    """

    args = ["build", "--target", spec.stage]
    for ref in refs:
        args.extend(["-t", ref])
    args.extend(["-f", str(dockerfile), str(context)])
    return args


def build_image(
    runner: ToolRunner,
    spec: ContainerSpec,
    refs: Sequence[str],
    *,
    dockerfile: Path,
    context: Path,
    docker_bin: str = "docker",
) -> ToolOutput:
    """Build one target image carrying every reference in ``refs``."""

    return runner.run(docker_bin, build_args(spec, refs, dockerfile=dockerfile, context=context))


def push_image(runner: ToolRunner, image_ref: str, *, docker_bin: str = "docker") -> ToolOutput:
    """Push an image reference to its registry."""

    return runner.run(docker_bin, ["push", image_ref])


def login_args(username: str, registry: Optional[str] = None) -> List[str]:
    args = ["login", "--username", username, "--password-stdin"]
    if registry:
        args.append(registry)
    return args


def registry_login(
    runner: ToolRunner,
    username: str,
    password: str,
    *,
    registry: Optional[str] = None,
    docker_bin: str = "docker",
) -> ToolOutput:
    """Log in to ``registry`` (the engine default when None), password on stdin."""

    return runner.run(docker_bin, login_args(username, registry), input=password, capture=True)


def ecr_password_args(region: str) -> List[str]:
    return ["ecr", "get-login-password", "--region", region]


def fetch_ecr_password(runner: ToolRunner, region: str, *, aws_bin: str = "aws") -> str:
    """Obtain a short-lived ECR password from the AWS CLI."""

    output = runner.run(aws_bin, ecr_password_args(region), capture=True)
    return output.stdout.strip()


__all__ = [
    "build_args",
    "build_image",
    "ecr_password_args",
    "fetch_ecr_password",
    "login_args",
    "push_image",
    "registry_login",
]
