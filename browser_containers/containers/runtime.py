"""Process-level collaborators shared by containers."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import docker
from docker.errors import APIError, DockerException, NotFound
from testcontainers.core.network import Network

from browser_containers.errors import ContainerLaunchError
from browser_containers.images.cache import ImageCache
from browser_containers.utils import host

logger = logging.getLogger(__name__)


class ContainerRuntime:
    """Docker client, shared network, validated-image cache and host facts.

    Pass one explicitly to isolate containers (e.g. in tests); otherwise
    containers use ``default_runtime()``.
    """

    def __init__(
        self,
        client=None,
        image_cache: Optional[ImageCache] = None,
        windows: Optional[bool] = None,
        timezone: Optional[str] = None,
    ):
        self._client = client
        self.image_cache = image_cache or ImageCache()
        self._windows = windows
        self._timezone = timezone
        self._shared_network: Optional[Network] = None
        self._lock = threading.Lock()

    @property
    def client(self):
        with self._lock:
            if self._client is None:
                try:
                    self._client = docker.from_env()
                    self._client.ping()
                except DockerException as e:
                    raise ContainerLaunchError(
                        f"Failed to connect to Docker daemon. Ensure Docker is running: {e}"
                    ) from e
            return self._client

    @property
    def shared_network(self) -> Network:
        """Network that browsers and their recorders join, created on first use."""
        with self._lock:
            if self._shared_network is None:
                try:
                    self._shared_network = Network().create()
                except DockerException as e:
                    raise ContainerLaunchError(f"Failed to create shared network: {e}") from e
                logger.debug("Created network %s", self._shared_network.name)
            return self._shared_network

    @property
    def is_windows(self) -> bool:
        if self._windows is None:
            self._windows = host.is_windows()
        return self._windows

    @property
    def timezone(self) -> str:
        if self._timezone is None:
            self._timezone = host.host_timezone()
        return self._timezone

    def close(self) -> None:
        with self._lock:
            network = self._shared_network
            self._shared_network = None
        if network is None:
            return
        try:
            network.remove()
        except (APIError, NotFound) as e:
            logger.warning("Failed to remove network %s: %s", network.name, e)


_default_runtime: Optional[ContainerRuntime] = None
_default_lock = threading.Lock()


def default_runtime() -> ContainerRuntime:
    global _default_runtime
    with _default_lock:
        if _default_runtime is None:
            _default_runtime = ContainerRuntime()
        return _default_runtime
