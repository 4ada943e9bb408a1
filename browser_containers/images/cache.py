"""Thread-safe cache of validated image names."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from browser_containers.models.image import ImageReference


class ImageCache:
    """Maps a requested image to the canonical name that was validated for it.

    Entries never expire. ``compute_if_absent`` holds a lock per requested
    image so concurrent callers for the same image wait for a single check;
    different images are validated in parallel.
    """

    def __init__(self):
        self._entries: dict[ImageReference, str] = {}
        self._lock = threading.Lock()
        self._key_locks: dict[ImageReference, threading.Lock] = {}

    def get(self, image: ImageReference) -> Optional[str]:
        with self._lock:
            return self._entries.get(image)

    def compute_if_absent(
        self, image: ImageReference, compute: Callable[[ImageReference], str]
    ) -> str:
        with self._lock:
            cached = self._entries.get(image)
            if cached is not None:
                return cached
            key_lock = self._key_locks.setdefault(image, threading.Lock())

        with key_lock:
            with self._lock:
                cached = self._entries.get(image)
            if cached is not None:
                return cached
            # Failures propagate and leave no entry behind
            value = compute(image)
            with self._lock:
                self._entries[image] = value
            return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, image: ImageReference) -> bool:
        with self._lock:
            return image in self._entries
