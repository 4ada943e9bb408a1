"""Readiness checks run after a container was started."""

from __future__ import annotations

import logging
import re
import time
from typing import TYPE_CHECKING

from selenium.webdriver.common.utils import is_connectable
from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_fixed
from testcontainers.core.waiting_utils import wait_for_logs

from browser_containers.errors import ContainerLaunchError

if TYPE_CHECKING:
    from browser_containers.containers.generic import GenericContainer

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.25


class WaitStrategy:
    """Blocks until a container is ready or the startup timeout expires."""

    def __init__(self, startup_timeout_seconds: float = 60.0):
        self.startup_timeout_seconds = startup_timeout_seconds

    def with_startup_timeout(self, seconds: float) -> "WaitStrategy":
        self.startup_timeout_seconds = seconds
        return self

    def wait_until_ready(self, container: "GenericContainer") -> None:
        deadline = time.monotonic() + self.startup_timeout_seconds
        self._wait(container, deadline)

    def _wait(self, container: "GenericContainer", deadline: float) -> None:
        raise NotImplementedError

    @staticmethod
    def _check_running(container: "GenericContainer") -> None:
        status = container.container_status()
        if status in ("exited", "dead"):
            raise ContainerLaunchError(
                f"Container {container.container_id} stopped during startup "
                f"(status={status})\n--- log tail ---\n{container.log_tail()}"
            )


class LogMessageWaitStrategy(WaitStrategy):
    """Waits until ``pattern`` matched ``times`` log lines."""

    def __init__(self, pattern: str, times: int = 1, startup_timeout_seconds: float = 60.0):
        super().__init__(startup_timeout_seconds)
        self.pattern = re.compile(pattern, re.MULTILINE)
        self.times = times

    def _wait(self, container: "GenericContainer", deadline: float) -> None:
        def seen(logs: str) -> bool:
            if sum(1 for _ in self.pattern.finditer(logs)) >= self.times:
                return True
            self._check_running(container)
            return False

        try:
            wait_for_logs(
                container,
                seen,
                timeout=max(0.0, deadline - time.monotonic()),
                interval=POLL_INTERVAL_SECONDS,
            )
        except TimeoutError as e:
            raise ContainerLaunchError(
                f"Timed out waiting for log output matching {self.pattern.pattern!r} "
                f"after {self.startup_timeout_seconds:.0f}s"
            ) from e
        logger.debug("Log pattern %r seen in %s", self.pattern.pattern, container.container_id)


class HostPortWaitStrategy(WaitStrategy):
    """Waits until every exposed port accepts TCP connections on the host."""

    def _wait(self, container: "GenericContainer", deadline: float) -> None:
        host = container.host
        for port in container.exposed_ports:
            retrying = Retrying(
                stop=stop_after_delay(max(0.0, deadline - time.monotonic())),
                wait=wait_fixed(POLL_INTERVAL_SECONDS),
                retry=retry_if_result(lambda listening: not listening),
            )
            try:
                retrying(self._listening, container, host, port)
            except RetryError as e:
                raise ContainerLaunchError(
                    f"Timed out waiting for port {port} on {host} "
                    f"after {self.startup_timeout_seconds:.0f}s"
                ) from e

    def _listening(self, container: "GenericContainer", host: str, port: int) -> bool:
        self._check_running(container)
        return is_connectable(container.get_mapped_port(port), host)


class WaitAllStrategy(WaitStrategy):
    """Runs several strategies against one shared deadline."""

    def __init__(self, *strategies: WaitStrategy, startup_timeout_seconds: float = 60.0):
        super().__init__(startup_timeout_seconds)
        self.strategies = list(strategies)

    def with_strategy(self, strategy: WaitStrategy) -> "WaitAllStrategy":
        self.strategies.append(strategy)
        return self

    def _wait(self, container: "GenericContainer", deadline: float) -> None:
        for strategy in self.strategies:
            own_deadline = time.monotonic() + strategy.startup_timeout_seconds
            strategy._wait(container, min(deadline, own_deadline))
