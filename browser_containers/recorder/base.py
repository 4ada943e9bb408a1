"""Base class of screen-recording sidecar containers."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from browser_containers.containers.generic import GenericContainer


class RecordingContainer(GenericContainer):
    """A container that records another container's display."""

    def save_recording_to_file(self, directory: Path, file_name_without_extension: str) -> Optional[Path]:
        """Copy the recording to ``directory``; ``None`` if nothing was recorded."""
        raise NotImplementedError
