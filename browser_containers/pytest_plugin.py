"""pytest integration: browser container fixtures with per-test recordings.

Enable it from a ``conftest.py``::

    pytest_plugins = ["browser_containers.pytest_plugin"]

    def test_homepage(browser_container_factory):
        browser = browser_container_factory(ChromeOptions(), recording_mode="record_failing")
        driver = webdriver.Remote(browser.selenium_address, options=ChromeOptions())
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import pytest

from browser_containers.containers.capabilities import CapabilitiesBrowserWebDriverContainer
from browser_containers.containers.runtime import ContainerRuntime
from browser_containers.models.config import BrowserContainerSettings, RecordingMode
from browser_containers.recorder.naming import filesystem_friendly_name

logger = logging.getLogger(__name__)


def pytest_addoption(parser) -> None:
    group = parser.getgroup("browser-containers")
    group.addoption(
        "--recording-dir",
        default=None,
        help="Directory for retained browser recordings (default: a temp directory)",
    )
    group.addoption(
        "--recording-mode",
        default=None,
        choices=[m.value for m in RecordingMode],
        help="Recording mode for browser containers created by fixtures",
    )


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)


def item_succeeded(item) -> bool:
    """True unless setup or the test body failed."""
    for when in ("setup", "call"):
        report = getattr(item, f"rep_{when}", None)
        if report is not None and report.failed:
            return False
    return True


@pytest.fixture(scope="session")
def container_runtime():
    runtime = ContainerRuntime()
    yield runtime
    runtime.close()


@pytest.fixture
def browser_container_factory(request, container_runtime: ContainerRuntime):
    """Start browser containers that are notified and stopped when the test ends."""
    containers: list[CapabilitiesBrowserWebDriverContainer] = []
    recording_dir: Optional[str] = request.config.getoption("--recording-dir")
    recording_mode: Optional[str] = request.config.getoption("--recording-mode")

    def _create(options=None, settings: Optional[BrowserContainerSettings] = None, **overrides):
        settings = (settings or BrowserContainerSettings()).model_copy(deep=True)
        if recording_mode and "recording_mode" not in overrides:
            settings.recording_mode = RecordingMode(recording_mode)
        if recording_dir and "recording_directory" not in overrides:
            settings.recording_directory = Path(recording_dir)
        for key, value in overrides.items():
            setattr(settings, key, value)

        container = CapabilitiesBrowserWebDriverContainer(
            options, settings=settings, runtime=container_runtime
        )
        containers.append(container)
        container.start()
        return container

    yield _create

    succeeded = item_succeeded(request.node)
    test_name = filesystem_friendly_name(request.node.nodeid)
    stop_errors: list[Exception] = []
    for container in containers:
        try:
            container.after_test(test_name, succeeded)
        except Exception:
            logger.warning(
                "Failed to finish recording of %s for %s", container.image, test_name, exc_info=True
            )
        try:
            container.stop()
        except Exception as e:
            logger.warning("Failed to stop %s", container.image, exc_info=True)
            stop_errors.append(e)
    # Every container is stopped before the first failure is reported
    if stop_errors:
        raise stop_errors[0]
