"""Browser container whose image is derived from Selenium capabilities."""

from __future__ import annotations

from typing import Optional

from selenium.webdriver.common.options import ArgOptions

from browser_containers.containers.browser import BrowserWebDriverContainer
from browser_containers.containers.runtime import ContainerRuntime
from browser_containers.images.resolver import resolve_standard_image
from browser_containers.models.config import BrowserContainerSettings


def browser_name_of(options: Optional[ArgOptions]) -> Optional[str]:
    if options is None:
        return None
    return options.to_capabilities().get("browserName")


class CapabilitiesBrowserWebDriverContainer(BrowserWebDriverContainer):
    """Picks ``selenium/standalone-<browser>:<selenium version>`` for the given options.

    Example::

        with CapabilitiesBrowserWebDriverContainer(FirefoxOptions()) as browser:
            browser.start()
            driver = webdriver.Remote(browser.selenium_address, options=FirefoxOptions())
    """

    def __init__(
        self,
        options: Optional[ArgOptions] = None,
        settings: Optional[BrowserContainerSettings] = None,
        runtime: Optional[ContainerRuntime] = None,
        selenium_version: Optional[str] = None,
    ):
        self.options = options
        self.browser_name = browser_name_of(options)
        super().__init__(
            resolve_standard_image(self.browser_name, selenium_version),
            settings=settings,
            runtime=runtime,
        )
