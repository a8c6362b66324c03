"""Narrow container-runtime client surface.

Only the operations kindling consumes are listed here, so the real
``docker.DockerClient`` and small test doubles are interchangeable.
"""

from __future__ import annotations

import dataclasses
import typing as typ

from docker.errors import DockerException, ImageNotFound

from kindling.errors import RuntimeUnavailableError

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class Container(typ.Protocol):
    """Container object returned by the runtime."""

    id: str
    attrs: dict[str, typ.Any]

    def start(self) -> None: ...

    def stop(self, *, timeout: int = ...) -> None: ...

    def remove(self, *, force: bool = ...) -> None: ...

    def reload(self) -> None: ...


class ContainerCollection(typ.Protocol):
    """Container lookup and creation."""

    def create(self, image: str, **kwargs: typ.Any) -> Container: ...  # noqa: ANN401

    def get(self, container_id: str) -> Container: ...


class Image(typ.Protocol):
    """Image object returned by the runtime."""

    id: str
    tags: list[str]


class ImageCollection(typ.Protocol):
    """Image lookup and retrieval."""

    def get(self, name: str) -> Image: ...

    def pull(self, repository: str, tag: str | None = ...) -> Image: ...

    def remove(self, image: str, *, force: bool = ...) -> None: ...


@typ.runtime_checkable
class RuntimeClient(typ.Protocol):
    """Operations used against a live container runtime."""

    containers: ContainerCollection
    images: ImageCollection

    def version(self) -> dict[str, typ.Any]: ...

    def close(self) -> None: ...


@typ.runtime_checkable
class PingableClient(RuntimeClient, typ.Protocol):
    """Runtime client that also supports the liveness probe used at connect."""

    def ping(self) -> bool: ...


@dataclasses.dataclass(frozen=True, slots=True)
class Version:
    """Version information reported by the runtime server."""

    version: str
    arch: str
    platform: str


class ContainerRuntime:
    """Connected container runtime.

    Build one with :func:`kindling.runtime.connect`, or wrap any
    :class:`RuntimeClient` directly.
    """

    def __init__(self, client: RuntimeClient, *, host: str | None = None) -> None:
        """Bind to an already-connected client."""
        self.client = client
        self.host = host

    def version(self) -> Version:
        """Query the server for its engine version, architecture and platform.

        Raises
        ------
        RuntimeUnavailableError
            If the version query fails.

        """
        try:
            info = self.client.version()
        except (DockerException, OSError) as exc:
            raise RuntimeUnavailableError.version_unknown() from exc

        platform = info.get("Platform") or {}
        return Version(
            version=str(info.get("Version", "")),
            arch=str(info.get("Arch", "")),
            platform=str(platform.get("Name", "")),
        )

    def create_container(
        self,
        image: str,
        *,
        name: str | None = None,
        command: cabc.Sequence[str] | None = None,
        **kwargs: typ.Any,  # noqa: ANN401
    ) -> str:
        """Create a container and return its id."""
        container = self.client.containers.create(
            image, name=name, command=command, **kwargs
        )
        return container.id

    def start_container(self, container_id: str) -> None:
        """Start a created container."""
        self.client.containers.get(container_id).start()

    def inspect_container(self, container_id: str) -> dict[str, typ.Any]:
        """Return the runtime's inspection document for a container."""
        container = self.client.containers.get(container_id)
        container.reload()
        return container.attrs

    def stop_container(self, container_id: str, *, timeout: int = 10) -> None:
        """Stop a running container, waiting up to ``timeout`` seconds."""
        self.client.containers.get(container_id).stop(timeout=timeout)

    def remove_container(self, container_id: str, *, force: bool = False) -> None:
        """Remove a container."""
        self.client.containers.get(container_id).remove(force=force)

    def has_image(self, name: str) -> bool:
        """Return True when ``name`` is present in the local image store."""
        try:
            self.client.images.get(name)
        except ImageNotFound:
            return False
        return True

    def pull_image(self, repository: str, tag: str | None = None) -> str:
        """Pull an image and return its id."""
        return self.client.images.pull(repository, tag=tag).id

    def remove_image(self, name: str, *, force: bool = False) -> None:
        """Remove an image from the local store."""
        self.client.images.remove(name, force=force)

    def close(self) -> None:
        """Release the underlying client connection."""
        self.client.close()
