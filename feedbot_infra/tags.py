"""Derive short image tags from source revisions."""

from __future__ import annotations

from typing import Optional

from feedbot_infra.core.exceptions import InvalidRevision

TAG_LENGTH = 7


def resolve_tag(revision: Optional[str]) -> str:
    """Return the image tag for ``revision``: its first seven characters.

    Revisions shorter than seven characters are returned unchanged, matching
    ``cut -c 1-7``.
    """

    if not revision:
        raise InvalidRevision("Revision identifier must be a non-empty string", step="ResolveTag")
    return revision[:TAG_LENGTH]


__all__ = ["TAG_LENGTH", "resolve_tag"]
