"""Docker image reference value type."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

DEFAULT_TAG = "latest"


class ImageReference(BaseModel):
    """Immutable ``[registry/]repository[:tag|@digest]`` reference."""

    model_config = ConfigDict(frozen=True)

    repository: str
    tag: str = DEFAULT_TAG
    registry: Optional[str] = None
    digest: Optional[str] = None

    @classmethod
    def parse(cls, name: str) -> "ImageReference":
        """Parse an image name such as ``localhost:5000/selenium/video:latest``."""
        name = name.strip()
        if not name:
            raise ValueError("Image name must not be empty")

        digest: Optional[str] = None
        if "@" in name:
            name, digest = name.split("@", 1)

        registry: Optional[str] = None
        first, sep, rest = name.partition("/")
        # A first component with a dot, a port or "localhost" is a registry host
        if sep and ("." in first or ":" in first or first == "localhost"):
            registry = first
            name = rest

        tag = DEFAULT_TAG
        slash = name.rfind("/")
        colon = name.rfind(":")
        if colon > slash:
            name, tag = name[:colon], name[colon + 1:]

        return cls(repository=name, tag=tag, registry=registry, digest=digest)

    @property
    def unversioned_name(self) -> str:
        if self.registry:
            return f"{self.registry}/{self.repository}"
        return self.repository

    @property
    def version_part(self) -> str:
        return self.digest or self.tag

    @property
    def canonical_name(self) -> str:
        if self.digest:
            return f"{self.unversioned_name}@{self.digest}"
        return f"{self.unversioned_name}:{self.tag}"

    def with_tag(self, tag: str) -> "ImageReference":
        return self.model_copy(update={"tag": tag, "digest": None})

    def __str__(self) -> str:
        return self.canonical_name
