"""Exception types raised by the browser container layer."""

from __future__ import annotations


class BrowserContainerError(Exception):
    """Base class for all errors raised by this package."""


class UnsupportedBrowserError(BrowserContainerError, ValueError):
    """Requested browser has no standalone Selenium image."""

    def __init__(self, browser_name: str | None, supported: list[str]):
        self.browser_name = browser_name
        self.supported = supported
        super().__init__(
            f"Unsupported Browser name '{browser_name}'; Supported: {', '.join(supported)}"
        )


class ContainerLaunchError(BrowserContainerError, RuntimeError):
    """A container could not be configured, started or became ready in time."""


class ImageValidationError(BrowserContainerError):
    """No candidate tag of an image could be pulled.

    ``__cause__`` is the last check failure; ``failures`` keeps all of them
    in check order.
    """

    def __init__(self, image: str, failures: list[BaseException]):
        self.image = image
        self.failures = failures
        last = failures[-1] if failures else None
        super().__init__(
            f"Unable to find a usable image for {image} "
            f"({len(failures)} candidate(s) failed; last: {last})"
        )
