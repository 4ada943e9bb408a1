"""Host introspection: operating system and timezone."""

from __future__ import annotations

import logging
import os
import platform
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Etc/UTC"
ETC_TIMEZONE = Path("/etc/timezone")
ETC_LOCALTIME = Path("/etc/localtime")

_ZONEINFO_MARKER = "zoneinfo/"


def is_windows() -> bool:
    return platform.system().startswith("Windows")


def host_timezone() -> str:
    """IANA name of the host timezone, ``Etc/UTC`` when it can't be determined."""
    tz = os.environ.get("TZ", "").strip().lstrip(":")
    if tz:
        return tz

    tz_file = ETC_TIMEZONE
    try:
        if tz_file.is_file():
            tz = tz_file.read_text().strip()
            if tz:
                return tz
    except OSError as e:
        logger.debug("Could not read %s: %s", tz_file, e)

    localtime = ETC_LOCALTIME
    try:
        if localtime.is_symlink():
            target = os.path.realpath(localtime)
            if _ZONEINFO_MARKER in target:
                return target.split(_ZONEINFO_MARKER, 1)[1]
    except OSError as e:
        logger.debug("Could not resolve %s: %s", localtime, e)

    return DEFAULT_TIMEZONE
