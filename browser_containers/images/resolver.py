"""Standard Selenium image lookup and tag fallback validation."""

from __future__ import annotations

import functools
import logging
from importlib import metadata
from typing import Callable, Optional

from docker.errors import ImageNotFound

from browser_containers.errors import ImageValidationError, UnsupportedBrowserError
from browser_containers.models.image import ImageReference
from browser_containers.utils.timeouts import get_with_timeout

logger = logging.getLogger(__name__)

CHROME_IMAGE = ImageReference.parse("selenium/standalone-chrome")
# Chrome has no ARM64 image; Chromium does
CHROMIUM_IMAGE = ImageReference.parse("selenium/standalone-chromium")
FIREFOX_IMAGE = ImageReference.parse("selenium/standalone-firefox")
EDGE_IMAGE = ImageReference.parse("selenium/standalone-edge")

CHROME = "chrome"
FIREFOX = "firefox"
EDGE = "MicrosoftEdge"

BROWSER_IMAGES: dict[str, ImageReference] = {
    CHROME: CHROME_IMAGE,
    FIREFOX: FIREFOX_IMAGE,
    EDGE: EDGE_IMAGE,
}
_BROWSER_ALIASES = {"edge": EDGE}

# as of 2026-01
DEFAULT_SELENIUM_VERSION = "4.40.0"

ImageCheck = Callable[[ImageReference], object]


@functools.lru_cache(maxsize=None)
def detect_selenium_version() -> str:
    """Version of the installed selenium package, or the default when missing."""
    try:
        version = metadata.version("selenium")
    except metadata.PackageNotFoundError:
        logger.warning(
            "Failed to determine Selenium version - will use default version of %s",
            DEFAULT_SELENIUM_VERSION,
        )
        return DEFAULT_SELENIUM_VERSION
    logger.info("Selenium version %s detected", version)
    return version


def resolve_standard_image(
    browser_name: Optional[str], selenium_version: Optional[str] = None
) -> ImageReference:
    """Map a WebDriver browserName to its standalone image, tagged with the Selenium version."""
    name = browser_name or CHROME
    name = _BROWSER_ALIASES.get(name, name)
    image = BROWSER_IMAGES.get(name)
    if image is None:
        raise UnsupportedBrowserError(browser_name, sorted([*BROWSER_IMAGES, *_BROWSER_ALIASES]))
    return image.with_tag(selenium_version or detect_selenium_version())


def candidate_tags(tag: str) -> list[str]:
    """Tags to try for ``tag``, most specific first: 1.2.3 -> 1.2 -> 1."""
    parts = tag.split(".")
    tags = [tag]
    for i in range(len(parts) - 1, 0, -1):
        tags.append(".".join(parts[:i]))
    return tags


def candidate_images(initial: ImageReference) -> list[ImageReference]:
    if initial.digest:
        return [initial]
    return [
        initial if tag == initial.tag else initial.with_tag(tag)
        for tag in candidate_tags(initial.tag)
    ]


class DockerImageCheck:
    """Checks that an image exists locally, pulling it from the registry otherwise."""

    def __init__(self, client):
        self.client = client

    def __call__(self, image: ImageReference):
        try:
            return self.client.images.get(image.canonical_name)
        except ImageNotFound:
            logger.debug("Image %s not present locally, pulling...", image)
        if image.digest:
            return self.client.images.pull(image.canonical_name)
        return self.client.images.pull(image.unversioned_name, tag=image.tag)


class ImageValidator:
    """Finds a pullable image for a requested reference.

    Some Selenium releases never get images for every browser, so the
    requested tag degrades to shorter version prefixes until one resolves.
    """

    def __init__(self, check: ImageCheck, timeout_seconds: float = 300.0):
        self.check = check
        self.timeout_seconds = timeout_seconds

    def validate_or_pick_alternative(self, initial: ImageReference) -> str:
        failures: list[BaseException] = []
        for current in candidate_images(initial):
            try:
                get_with_timeout(
                    functools.partial(self.check, current), self.timeout_seconds
                )
            except Exception as e:
                logger.debug("Image %s is not usable: %s", current, e)
                failures.append(e)
                continue

            if current != initial:
                logger.warning(
                    "Unable to use %s; Selecting alternative %s due to: %s",
                    initial,
                    current,
                    "; ".join(str(f) for f in failures),
                )
            return current.canonical_name

        raise ImageValidationError(initial.canonical_name, failures) from failures[-1]
