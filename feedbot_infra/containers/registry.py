"""Registry definitions for the two bsky-feed-bot image targets."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Tuple, Union

LATEST_TAG = "latest"


class ImageTarget(str, Enum):
    """Closed set of build targets produced from the shared Dockerfile."""

    PRIMARY = "primary"
    TEST = "test"


@dataclass(frozen=True)
class ContainerSpec:
    """Describe one image target: its Dockerfile stage and repository name."""

    target: ImageTarget
    repository: str
    stage: str
    description: str
    binary: str

    def ref(self, registry: str, tag: str = LATEST_TAG) -> str:
        """Return ``{registry}/{repository}:{tag}``."""

        return f"{registry}/{self.repository}:{tag}"

    def release_tags(self, image_tag: str) -> Tuple[str, str]:
        """Return the two tags every build carries, ``latest`` first."""

        return (LATEST_TAG, image_tag)

    def release_refs(self, registry: str, image_tag: str) -> Tuple[str, ...]:
        return tuple(self.ref(registry, tag) for tag in self.release_tags(image_tag))


_CONTAINERS: Dict[ImageTarget, ContainerSpec] = {
    ImageTarget.PRIMARY: ContainerSpec(
        target=ImageTarget.PRIMARY,
        repository="bsky-feed-bot-lambda",
        stage="bsky-feed-bot-lambda",
        description="Deployable feed bot behind the Lambda bootstrap entry point",
        binary="bsky-feed-bot",
    ),
    ImageTarget.TEST: ContainerSpec(
        target=ImageTarget.TEST,
        repository="test",
        stage="test",
        description="Test binary packaged behind the same bootstrap entry point",
        binary="test",
    ),
}


def available_containers() -> Iterable[ContainerSpec]:
    """Yield the container specifications in build order (primary, then test)."""

    return tuple(_CONTAINERS[target] for target in ImageTarget)


def get_container(key: Union[str, ImageTarget]) -> ContainerSpec:
    """Return a container specification by target name."""

    try:
        return _CONTAINERS[ImageTarget(key)]
    except ValueError as exc:
        known = ", ".join(target.value for target in ImageTarget)
        raise ValueError(f"Unknown container target '{key}'. Expected one of: {known}") from exc


__all__ = ["ContainerSpec", "ImageTarget", "LATEST_TAG", "available_containers", "get_container"]
