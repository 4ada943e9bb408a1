"""Pytest configuration and shared fixtures."""

import io
import tarfile
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from testcontainers.core.container import DockerContainer

from browser_containers.containers import wait
from browser_containers.containers.browser import BrowserWebDriverContainer
from browser_containers.containers.runtime import ContainerRuntime
from browser_containers.images.cache import ImageCache
from browser_containers.models.config import BrowserContainerSettings, RecorderSettings


# ============================================================================
# Docker Fakes
# ============================================================================


def make_docker_container(
    container_id: str = "c0ffee",
    name: str = "/brave_turing",
    ports: dict | None = None,
    status: str = "running",
    logs: bytes = b"",
) -> Mock:
    """Create a stand-in for ``docker.models.containers.Container``."""
    container = Mock()
    container.id = container_id
    container.name = name.lstrip("/")
    container.status = status
    container.attrs = {"Name": name, "NetworkSettings": {"Ports": ports or {}}}
    container.logs.return_value = logs
    return container


def make_tar_stream(file_name: str, content: bytes) -> list[bytes]:
    """Create the chunked tar stream ``Container.get_archive`` returns."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        info = tarfile.TarInfo(name=file_name)
        info.size = len(content)
        tar.addfile(info, io.BytesIO(content))
    data = buf.getvalue()
    return [data[i:i + 512] for i in range(0, len(data), 512)]


@pytest.fixture
def docker_container() -> Mock:
    return make_docker_container(
        ports={"4444/tcp": [{"HostIp": "0.0.0.0", "HostPort": "32768"}]},
        logs=b"INFO Started Selenium Standalone 4.40.0\n",
    )


@pytest.fixture
def mock_docker_client(docker_container: Mock) -> Mock:
    """Create a mock docker client; ``testcontainers_client.run`` returns ``docker_container``."""
    client = Mock()
    client.networks.create.return_value = Mock(name="network")
    client.api._version = "1.44"
    return client


@pytest.fixture
def testcontainers_client(mock_docker_client: Mock, docker_container: Mock) -> Mock:
    """Stand-in for testcontainers' ``DockerClient`` wrapper around ``mock_docker_client``."""
    client = Mock()
    client.client = mock_docker_client
    client.run.return_value = docker_container
    client.port.return_value = "32768"
    client.client_networks_create.side_effect = (
        lambda name, param: mock_docker_client.networks.create(name, **param)
    )
    return client


@pytest.fixture(autouse=True)
def no_docker(request, testcontainers_client: Mock):
    """Route testcontainers through the mock client; tests marked ``docker`` use the daemon."""
    if request.node.get_closest_marker("docker"):
        yield None
        return
    with patch("testcontainers.core.container.DockerClient", return_value=testcontainers_client), \
            patch("testcontainers.core.network.DockerClient", return_value=testcontainers_client), \
            patch("testcontainers.core.container.Reaper", create=True), \
            patch.object(DockerContainer, "get_container_host_ip", return_value="localhost"):
        yield testcontainers_client


@pytest.fixture
def runtime(mock_docker_client: Mock) -> ContainerRuntime:
    """Runtime on a mock client, with fixed host facts."""
    return ContainerRuntime(
        client=mock_docker_client,
        image_cache=ImageCache(),
        windows=False,
        timezone="Europe/Berlin",
    )


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def recorder_settings() -> RecorderSettings:
    return RecorderSettings()


@pytest.fixture
def recording_settings(tmp_path: Path) -> BrowserContainerSettings:
    """Settings that record every test into a temp directory."""
    return BrowserContainerSettings(
        recording_mode="record_all",
        recording_directory=tmp_path / "records",
        before_recording_save_wait_seconds=None,
        validate_image=False,
    )


@pytest.fixture
def browser_container(runtime: ContainerRuntime) -> BrowserWebDriverContainer:
    """A chrome container that skips image validation."""
    container = BrowserWebDriverContainer(
        "selenium/standalone-chrome:4.40.0", runtime=runtime
    )
    container.with_validate_image(False)
    return container


# ============================================================================
# Helper Fixtures
# ============================================================================


@pytest.fixture
def tar_stream_helper():
    """Fixture that provides the make_tar_stream function."""
    return make_tar_stream


@pytest.fixture
def docker_container_factory():
    """Fixture that provides the make_docker_container function."""
    return make_docker_container


@pytest.fixture
def log_wait():
    """Evaluate the log predicate once, the way testcontainers' poll loop would."""
    def evaluate(container, predicate, timeout, interval):
        if not predicate(container.log_tail()):
            raise TimeoutError(f"no match after {timeout}s")
        return 0.0

    with patch.object(wait, "wait_for_logs", side_effect=evaluate) as wait_for_logs:
        yield wait_for_logs


@pytest.fixture
def ready_container(log_wait):
    """Every exposed port accepts connections; log patterns are checked once."""
    with patch.object(wait, "is_connectable", return_value=True) as connectable:
        yield connectable
