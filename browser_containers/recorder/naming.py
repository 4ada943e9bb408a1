"""File names for retained test recordings."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

PASSED = "PASSED"
FAILED = "FAILED"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class TestRecordingFileNameFactory(Protocol):
    def build_name_without_extension(self, test_name: str, succeeded: bool) -> str: ...


class DefaultTestRecordingFileNameFactory:
    """``PASSED-<test>-<yyyyMMdd-HHmmss>`` using the current UTC time."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def build_name_without_extension(self, test_name: str, succeeded: bool) -> str:
        return "-".join([
            PASSED if succeeded else FAILED,
            test_name,
            self.clock().strftime(TIMESTAMP_FORMAT),
        ])


def filesystem_friendly_name(name: str) -> str:
    """Collapse characters that are unsafe in file names, e.g. a pytest node id."""
    cleaned = _UNSAFE_CHARS.sub("_", name).strip("._")
    return cleaned or "test"
