"""Tests for the generic container lifecycle and wait strategies."""

from unittest.mock import Mock, patch

import pytest
from docker.errors import APIError, NotFound

from browser_containers.containers import wait
from browser_containers.containers.generic import GenericContainer
from browser_containers.containers.wait import (
    HostPortWaitStrategy,
    LogMessageWaitStrategy,
    WaitAllStrategy,
)
from browser_containers.errors import ContainerLaunchError


# ============================================================================
# Lifecycle
# ============================================================================


class TestStart:
    """Tests for run and startup attempts."""

    def test_runs_with_configuration(self, runtime, testcontainers_client):
        container = (
            GenericContainer("selenium/video:latest", runtime=runtime)
            .with_env("A", "1")
            .with_exposed_ports(4444, 4444, 5900)
            .with_command("/opt/bin/entry_point.sh")
            .with_bind("/dev/shm", "/dev/shm")
        )
        container.start()

        args = testcontainers_client.run.call_args.args
        kwargs = testcontainers_client.run.call_args.kwargs
        assert args == ("selenium/video:latest",)
        assert kwargs["environment"] == {"A": "1"}
        assert kwargs["ports"] == {4444: None, 5900: None}
        assert kwargs["command"] == "/opt/bin/entry_point.sh"
        assert kwargs["volumes"] == {"/dev/shm": {"bind": "/dev/shm", "mode": "rw"}}
        assert kwargs["detach"] is True
        assert "shm_size" not in kwargs
        assert container.container_id == "c0ffee"

    def test_shared_memory_size_is_passed_to_docker(self, runtime, testcontainers_client):
        container = GenericContainer("selenium/video", runtime=runtime).with_shared_memory_size(1024)
        container.start()
        assert container.shm_size == 1024
        assert testcontainers_client.run.call_args.kwargs["shm_size"] == 1024

    def test_calls_hooks_in_order(self, runtime):
        events = []

        class Hooked(GenericContainer):
            def configure(self):
                events.append("configure")

            def container_is_started(self):
                events.append("started")

        Hooked("selenium/video", runtime=runtime).start()
        assert events == ["configure", "started"]

    def test_start_twice_is_noop(self, runtime, testcontainers_client):
        container = GenericContainer("selenium/video", runtime=runtime)
        container.start()
        container.start()
        assert testcontainers_client.run.call_count == 1

    def test_joins_network_with_aliases(self, runtime, testcontainers_client):
        network = Mock()
        network.name = "net-1"
        container = (
            GenericContainer("selenium/video", runtime=runtime)
            .with_network(network)
            .with_network_aliases("browser")
        )
        container.start()

        kwargs = testcontainers_client.run.call_args.kwargs
        assert container.network is network
        assert container.network_aliases == ["browser"]
        assert kwargs["network"] == "net-1"
        assert kwargs["networking_config"]["net-1"]["Aliases"] == ["browser"]

    def test_retries_failed_run(self, runtime, testcontainers_client, docker_container_factory):
        good = docker_container_factory(container_id="good")
        testcontainers_client.run.side_effect = [APIError("port already allocated"), good]

        container = GenericContainer("selenium/video", runtime=runtime).with_startup_attempts(3)
        container.start()

        assert container.container_id == "good"
        assert testcontainers_client.run.call_count == 2

    def test_raises_after_last_attempt(self, runtime, testcontainers_client):
        testcontainers_client.run.side_effect = APIError("no such image")
        container = GenericContainer("selenium/video", runtime=runtime).with_startup_attempts(2)

        with pytest.raises(ContainerLaunchError, match="2 attempt") as exc_info:
            container.start()
        assert isinstance(exc_info.value.__cause__, APIError)
        assert testcontainers_client.run.call_count == 2
        assert container.container_id is None

    def test_wait_strategy_failure_removes_and_retries(
        self, runtime, testcontainers_client, docker_container_factory
    ):
        broken = docker_container_factory(container_id="broken")
        good = docker_container_factory(container_id="good")
        testcontainers_client.run.side_effect = [broken, good]
        strategy = Mock()
        strategy.wait_until_ready.side_effect = [ContainerLaunchError("not ready"), None]
        container = (
            GenericContainer("selenium/video", runtime=runtime)
            .with_startup_attempts(2)
            .with_wait_strategy(strategy)
        )
        container.start()

        assert strategy.wait_until_ready.call_count == 2
        broken.remove.assert_called_once_with(force=True, v=True)
        assert container.container_id == "good"

    def test_started_hook_failure_removes_container(self, runtime, docker_container):
        class FailingHook(GenericContainer):
            def container_is_started(self):
                raise ContainerLaunchError("sidecar did not come up")

        container = FailingHook("selenium/video", runtime=runtime)
        with pytest.raises(ContainerLaunchError, match="1 attempt"):
            container.start()

        docker_container.remove.assert_called_once_with(force=True, v=True)
        assert container.container_id is None

    def test_started_hook_failure_is_retried(
        self, runtime, testcontainers_client, docker_container_factory
    ):
        first = docker_container_factory(container_id="first")
        second = docker_container_factory(container_id="second")
        testcontainers_client.run.side_effect = [first, second]
        outcomes = [ContainerLaunchError("sidecar did not come up"), None]

        class FlakyHook(GenericContainer):
            def container_is_started(self):
                outcome = outcomes.pop(0)
                if outcome is not None:
                    raise outcome

        container = FlakyHook("selenium/video", runtime=runtime).with_startup_attempts(2)
        container.start()

        first.remove.assert_called_once_with(force=True, v=True)
        assert container.container_id == "second"


class TestStop:
    """Tests for stopping containers."""

    def test_stop_removes_container(self, runtime, docker_container):
        container = GenericContainer("selenium/video", runtime=runtime)
        container.start()
        container.stop()
        docker_container.remove.assert_called_once_with(force=True, v=True)
        assert container.container_id is None

    def test_stop_without_start_is_noop(self, runtime, docker_container):
        GenericContainer("selenium/video", runtime=runtime).stop()
        docker_container.remove.assert_not_called()

    def test_stop_ignores_already_removed(self, runtime, docker_container):
        docker_container.remove.side_effect = NotFound("gone")
        container = GenericContainer("selenium/video", runtime=runtime)
        container.start()
        container.stop()
        assert container.container_id is None

    def test_stop_logs_api_errors(self, runtime, docker_container, caplog):
        docker_container.remove.side_effect = APIError("device busy")
        container = GenericContainer("selenium/video", runtime=runtime)
        container.start()
        container.stop()
        assert container.container_id is None
        assert "Failed to remove container c0ffee" in caplog.text

    def test_stop_no_remove_keeps_container(self, runtime, docker_container):
        container = GenericContainer("selenium/video", runtime=runtime)
        container.start()
        container.stop_no_remove()
        docker_container.stop.assert_called_once()
        docker_container.remove.assert_not_called()
        assert container.container_id == "c0ffee"

    def test_context_manager_starts_and_stops(self, runtime, docker_container):
        with GenericContainer("selenium/video", runtime=runtime) as container:
            assert container.container_id == "c0ffee"
        docker_container.remove.assert_called_once()


class TestState:
    """Tests for state accessors."""

    def test_mapped_port(self, runtime, testcontainers_client):
        container = GenericContainer("selenium/video", runtime=runtime).with_exposed_ports(4444)
        container.start()
        assert container.get_mapped_port(4444) == 32768
        testcontainers_client.port.assert_called_with("c0ffee", 4444)

    def test_mapped_port_before_start(self, runtime):
        with pytest.raises(ContainerLaunchError):
            GenericContainer("selenium/video", runtime=runtime).get_mapped_port(4444)

    def test_container_name_and_logs(self, runtime):
        container = GenericContainer("selenium/video", runtime=runtime)
        assert container.container_name is None
        assert container.log_tail() == ""
        container.start()
        assert container.container_name == "/brave_turing"
        assert "Started Selenium Standalone" in container.log_tail()

    def test_status_reloads(self, runtime, docker_container):
        container = GenericContainer("selenium/video", runtime=runtime)
        assert container.container_status() is None
        container.start()
        assert container.container_status() == "running"
        docker_container.reload.assert_called_once()

    def test_image_name_follows_requested_image(self, runtime):
        container = GenericContainer("selenium/standalone-chrome", runtime=runtime)
        assert container.image_name == "selenium/standalone-chrome:latest"
        container.image_name = "selenium/standalone-chrome:4.40.0"
        assert container.image == "selenium/standalone-chrome:4.40.0"


class TestCopyFileFromContainer:
    """Tests for copying files out of a container."""

    def test_copies_file(self, runtime, docker_container, tar_stream_helper, tmp_path):
        docker_container.get_archive.return_value = (
            tar_stream_helper("record.mp4", b"\x00video-bytes" * 200), {}
        )
        container = GenericContainer("selenium/video", runtime=runtime)
        container.start()

        out = container.copy_file_from_container("/videos/record.mp4", tmp_path / "out" / "a.mp4")

        docker_container.get_archive.assert_called_once_with("/videos/record.mp4")
        assert out.read_bytes() == b"\x00video-bytes" * 200

    def test_overwrites_existing_file(self, runtime, docker_container, tar_stream_helper, tmp_path):
        target = tmp_path / "a.mp4"
        target.write_bytes(b"old content that is longer")
        docker_container.get_archive.return_value = (tar_stream_helper("record.mp4", b"new"), {})
        container = GenericContainer("selenium/video", runtime=runtime)
        container.start()

        container.copy_file_from_container("/videos/record.mp4", target)
        assert target.read_bytes() == b"new"

    def test_requires_started_container(self, runtime, tmp_path):
        with pytest.raises(ContainerLaunchError):
            GenericContainer("selenium/video", runtime=runtime).copy_file_from_container(
                "/videos/x.mp4", tmp_path / "x.mp4"
            )


# ============================================================================
# Wait strategies
# ============================================================================


def fake_container(logs: str = "", status: str = "running") -> Mock:
    container = Mock()
    container.container_id = "c0ffee"
    container.log_tail.return_value = logs
    container.container_status.return_value = status
    return container


class TestLogMessageWaitStrategy:
    """Tests for log-based readiness."""

    def test_ready_when_pattern_seen(self, log_wait):
        container = fake_container("booting\n12:00 Started Selenium Standalone 4.40.0 (revision)\n")
        LogMessageWaitStrategy(r".*(Started Selenium Standalone).*").wait_until_ready(container)
        assert log_wait.call_args.kwargs["interval"] == wait.POLL_INTERVAL_SECONDS

    def test_needs_pattern_times(self, log_wait):
        container = fake_container("video-ready\n")
        strategy = LogMessageWaitStrategy("video-ready", times=2)
        with pytest.raises(ContainerLaunchError, match="Timed out"):
            strategy.wait_until_ready(container)

        container.log_tail.return_value = "video-ready\nvideo-ready\n"
        strategy.wait_until_ready(container)

    def test_times_out(self, log_wait):
        strategy = LogMessageWaitStrategy("never", startup_timeout_seconds=0)
        with pytest.raises(ContainerLaunchError, match="Timed out"):
            strategy.wait_until_ready(fake_container("still booting\n"))

    def test_fails_fast_when_container_exited(self, log_wait):
        container = fake_container("fatal error\n", status="exited")
        strategy = LogMessageWaitStrategy("never", startup_timeout_seconds=60)
        with pytest.raises(ContainerLaunchError, match="stopped during startup"):
            strategy.wait_until_ready(container)


class TestHostPortWaitStrategy:
    """Tests for port-based readiness."""

    def test_ready_when_all_ports_open(self):
        container = fake_container()
        container.host = "localhost"
        container.exposed_ports = [4444, 7900]
        container.get_mapped_port.side_effect = lambda p: p + 30000
        with patch.object(wait, "is_connectable", return_value=True) as connectable:
            HostPortWaitStrategy().wait_until_ready(container)
        assert [c.args for c in connectable.call_args_list] == [
            (34444, "localhost"), (37900, "localhost")
        ]

    def test_polls_until_open(self):
        container = fake_container()
        container.host = "localhost"
        container.exposed_ports = [4444]
        container.get_mapped_port.return_value = 34444
        with patch.object(wait, "is_connectable", side_effect=[False, True]) as connectable, \
                patch("tenacity.nap.time.sleep"):
            HostPortWaitStrategy().wait_until_ready(container)
        assert connectable.call_count == 2

    def test_times_out_on_closed_port(self):
        container = fake_container()
        container.host = "localhost"
        container.exposed_ports = [4444]
        container.get_mapped_port.return_value = 34444
        with patch.object(wait, "is_connectable", return_value=False):
            with pytest.raises(ContainerLaunchError, match="port 4444"):
                HostPortWaitStrategy(startup_timeout_seconds=0).wait_until_ready(container)

    def test_fails_fast_when_container_exited(self):
        container = fake_container("boom\n", status="dead")
        container.host = "localhost"
        container.exposed_ports = [4444]
        with patch.object(wait, "is_connectable") as connectable:
            with pytest.raises(ContainerLaunchError, match="stopped during startup"):
                HostPortWaitStrategy().wait_until_ready(container)
        connectable.assert_not_called()


class TestWaitAllStrategy:
    """Tests for combined readiness checks."""

    def test_runs_every_strategy(self):
        first, second = Mock(startup_timeout_seconds=60), Mock(startup_timeout_seconds=60)
        container = Mock()
        WaitAllStrategy(first).with_strategy(second).wait_until_ready(container)
        first._wait.assert_called_once()
        second._wait.assert_called_once()
