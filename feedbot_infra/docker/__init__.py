"""Docker image build and publish utilities."""

from __future__ import annotations

from .publisher import (
    build_args,
    build_image,
    ecr_password_args,
    fetch_ecr_password,
    login_args,
    push_image,
    registry_login,
)

__all__ = [
    "build_args",
    "build_image",
    "ecr_password_args",
    "fetch_ecr_password",
    "login_args",
    "push_image",
    "registry_login",
]
