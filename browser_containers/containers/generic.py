"""Single-container lifecycle on top of testcontainers' ``DockerContainer``."""

from __future__ import annotations

import logging
import shutil
import tarfile
import tempfile
from pathlib import Path
from typing import Optional

from docker.errors import APIError, NotFound
from tenacity import RetryError, Retrying, before_sleep_log, stop_after_attempt
from testcontainers.core.container import DockerContainer
from testcontainers.core.network import Network

from browser_containers.containers.runtime import ContainerRuntime, default_runtime
from browser_containers.containers.wait import WaitStrategy
from browser_containers.errors import ContainerLaunchError
from browser_containers.models.image import ImageReference

logger = logging.getLogger(__name__)


class GenericContainer(DockerContainer):
    """A ``DockerContainer`` with startup attempts, readiness checks and lifecycle hooks.

    Subclasses adjust settings in ``configure()`` (run before every ``start()``)
    and react to readiness in ``container_is_started()``. A failing hook
    counts as a failed attempt: the container is removed and started again.
    """

    def __init__(self, image: str | ImageReference, runtime: Optional[ContainerRuntime] = None):
        self.requested_image = (
            image if isinstance(image, ImageReference) else ImageReference.parse(image)
        )
        super().__init__(self.requested_image.canonical_name)
        self.runtime = runtime or default_runtime()
        self.shm_size: Optional[int] = None
        self.startup_attempts = 1
        self.wait_strategy: Optional[WaitStrategy] = None

    # region Config
    @property
    def image_name(self) -> str:
        return self.image

    @image_name.setter
    def image_name(self, value: str) -> None:
        self.image = value

    @property
    def exposed_ports(self) -> list[int]:
        return list(self.ports)

    @property
    def network(self) -> Optional[Network]:
        return self._network

    @property
    def network_aliases(self) -> list[str]:
        return list(self._network_aliases or [])

    def with_bind(self, host_path: str, container_path: str, mode: str = "rw") -> "GenericContainer":
        return self.with_volume_mapping(host_path, container_path, mode)

    def with_shared_memory_size(self, size_bytes: int) -> "GenericContainer":
        self.shm_size = size_bytes
        return self.with_kwargs(shm_size=size_bytes)

    def with_startup_attempts(self, attempts: int) -> "GenericContainer":
        self.startup_attempts = max(1, attempts)
        return self

    def with_wait_strategy(self, strategy: WaitStrategy) -> "GenericContainer":
        self.wait_strategy = strategy
        return self
    # endregion

    # region Lifecycle
    def configure(self) -> None:
        """Hook: finalize settings before the container is created."""

    def container_is_started(self) -> None:
        """Hook: called once the container passed its wait strategy."""

    def start(self) -> "GenericContainer":
        if self._container is not None:
            return self
        self.configure()

        retrying = Retrying(
            stop=stop_after_attempt(self.startup_attempts),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        try:
            retrying(self._start_attempt)
        except RetryError as e:
            raise ContainerLaunchError(
                f"Container {self.image} did not start after "
                f"{self.startup_attempts} attempt(s)"
            ) from e.last_attempt.exception()

        logger.info("Container %s started (%s)", self.image, self.container_id)
        return self

    def _start_attempt(self) -> None:
        try:
            super().start()
            if self.wait_strategy is not None:
                self.wait_strategy.wait_until_ready(self)
            self.container_is_started()
        except Exception:
            self._remove_quietly()
            raise

    def stop(self, force: bool = True, delete_volume: bool = True) -> None:
        """Stop and remove the container. Does nothing if it never started."""
        if self._container is None:
            return
        logger.debug("Stopping container %s", self.container_id)
        self._remove_quietly(force, delete_volume)

    def stop_no_remove(self) -> None:
        """Stop the container but keep its filesystem around."""
        if self._container is not None:
            self._container.stop()

    def _remove_quietly(self, force: bool = True, delete_volume: bool = True) -> None:
        if self._container is None:
            return
        container_id = self.container_id
        try:
            super().stop(force=force, delete_volume=delete_volume)
        except NotFound:
            pass
        except APIError as e:
            logger.warning("Failed to remove container %s: %s", container_id, e)
        finally:
            self._container = None
    # endregion

    # region State
    @property
    def container_id(self) -> Optional[str]:
        return self._container.id if self._container is not None else None

    @property
    def container_name(self) -> Optional[str]:
        if self._container is None:
            return None
        return self._container.attrs.get("Name") or self._container.name

    @property
    def host(self) -> str:
        return self.get_container_host_ip()

    def container_status(self) -> Optional[str]:
        if self._container is None:
            return None
        self._container.reload()
        return self._container.status

    def log_tail(self, lines: int = 50) -> str:
        if self._container is None:
            return ""
        return self._container.logs(stdout=True, stderr=True, tail=lines).decode(
            "utf-8", errors="replace"
        )

    def get_mapped_port(self, port: int) -> int:
        if self._container is None:
            raise ContainerLaunchError("Mapped ports are only available once the container is started")
        return int(self.get_exposed_port(port))
    # endregion

    def copy_file_from_container(self, container_path: str, destination: Path) -> Path:
        """Copy one file out of the container (also works once it is stopped)."""
        if self._container is None:
            raise ContainerLaunchError("Container was never started")
        bits, _ = self._container.get_archive(container_path)
        with tempfile.SpooledTemporaryFile(max_size=16 * 1024 * 1024) as buf:
            for chunk in bits:
                buf.write(chunk)
            buf.seek(0)
            with tarfile.open(fileobj=buf, mode="r|") as tar:
                for member in tar:
                    if not member.isfile():
                        continue
                    source = tar.extractfile(member)
                    destination.parent.mkdir(parents=True, exist_ok=True)
                    with open(destination, "wb") as out:
                        shutil.copyfileobj(source, out)
                    return destination
        raise FileNotFoundError(f"{container_path} is not a regular file in {self.container_id}")
