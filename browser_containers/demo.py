"""Demo session runner: one recorded browser session per configured browser."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from selenium import webdriver
from selenium.webdriver.common.by import By
from selenium.webdriver.common.options import ArgOptions

from browser_containers.containers.capabilities import CapabilitiesBrowserWebDriverContainer
from browser_containers.containers.runtime import ContainerRuntime
from browser_containers.images.resolver import CHROME, EDGE, FIREFOX
from browser_containers.models.config import RunConfig
from browser_containers.models.recording import RecordingOutcome

logger = logging.getLogger(__name__)

OPTIONS_FACTORIES: dict[str, Callable[[], ArgOptions]] = {
    CHROME: webdriver.ChromeOptions,
    FIREFOX: webdriver.FirefoxOptions,
    EDGE: webdriver.EdgeOptions,
    "edge": webdriver.EdgeOptions,
}

# Give the recorder a moment to get everything on tape
SETTLE_SECONDS = 0.1


def options_for(browser: str) -> ArgOptions:
    factory = OPTIONS_FACTORIES.get(browser)
    if factory is None:
        raise ValueError(
            f"Unknown browser '{browser}'; Supported: {', '.join(sorted(OPTIONS_FACTORIES))}"
        )
    return factory()


class DemoRunner:
    """Starts a recorded container per browser and drives a short session in it."""

    def __init__(self, config: RunConfig, runtime: Optional[ContainerRuntime] = None):
        self.config = config
        self.runtime = runtime or ContainerRuntime()

    def run(self) -> list[RecordingOutcome]:
        recording_dir = self.config.container.recording_directory
        if recording_dir is not None:
            Path(recording_dir).mkdir(parents=True, exist_ok=True)

        outcomes: list[RecordingOutcome] = []
        try:
            for browser in self.config.browsers:
                outcomes.append(self.run_browser(browser))
        finally:
            self.runtime.close()
        return outcomes

    def run_browser(self, browser: str) -> RecordingOutcome:
        options = options_for(browser)
        browser_name = options.to_capabilities().get("browserName", browser)
        test_name = f"demo-{browser_name}"
        logger.info("--- Session %s ---", test_name)
        start = time.time()

        with CapabilitiesBrowserWebDriverContainer(
            options,
            settings=self.config.container,
            runtime=self.runtime,
            selenium_version=self.config.selenium_version,
        ) as container:
            succeeded = self._drive(container, options, browser_name)
            time.sleep(SETTLE_SECONDS)
            outcome = container.after_test(test_name, succeeded)

        logger.info("--- Session %s finished in %.1fs ---", test_name, time.time() - start)
        return outcome or RecordingOutcome(test_name=test_name, succeeded=succeeded)

    def _drive(self, container, options: ArgOptions, browser_name: str) -> bool:
        driver = webdriver.Remote(command_executor=container.selenium_address, options=options)
        try:
            driver.maximize_window()
            url = self.config.start_urls.get(browser_name, "about:blank")
            logger.debug("Opening %s", url)
            driver.get(url)
            time.sleep(self.config.simulated_work_seconds)
            driver.find_elements(By.TAG_NAME, "body")
            return True
        except Exception as e:
            logger.error("Session in %s failed: %s", browser_name, e)
            return False
        finally:
            driver.quit()
