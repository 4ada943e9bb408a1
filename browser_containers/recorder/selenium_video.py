"""Recording sidecar based on the ``selenium/video`` image."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from browser_containers.containers.wait import LogMessageWaitStrategy
from browser_containers.models.config import RecorderSettings
from browser_containers.recorder.base import RecordingContainer

if TYPE_CHECKING:
    from browser_containers.containers.browser import BrowserWebDriverContainer

logger = logging.getLogger(__name__)

# Environment contract of the selenium/video image (Video/Dockerfile)
ENV_DISPLAY_CONTAINER_NAME = "DISPLAY_CONTAINER_NAME"
ENV_SE_VIDEO_FILE_NAME = "SE_VIDEO_FILE_NAME"
ENV_SE_SCREEN_WIDTH = "SE_SCREEN_WIDTH"
ENV_SE_SCREEN_HEIGHT = "SE_SCREEN_HEIGHT"
ENV_SE_FRAME_RATE = "SE_FRAME_RATE"
ENV_SE_CODEC = "SE_CODEC"
ENV_SE_PRESET = "SE_PRESET"

VIDEO_DIR = "/videos"
DEFAULT_SCREEN_WIDTH = "1360"
DEFAULT_SCREEN_HEIGHT = "1020"


class SeleniumRecordingContainer(RecordingContainer):
    """Records the display of a Selenium standalone container to ``/videos``."""

    def __init__(
        self,
        target: "BrowserWebDriverContainer",
        settings: Optional[RecorderSettings] = None,
    ):
        self.settings = (settings or target.settings.recorder).model_copy()
        super().__init__(self.settings.image, runtime=target.runtime)
        self.target = target
        self.resolution_configured = False
        self._derived_video_file_name: Optional[str] = None

        self.with_wait_strategy(LogMessageWaitStrategy(
            r".*(success: video-ready entered RUNNING state).*",
            startup_timeout_seconds=60,
        ))
        self._apply_settings()

    def _apply_settings(self) -> None:
        s = self.settings
        if s.display_container_name:
            self.with_display_container_name(s.display_container_name)
        if s.video_file_name:
            self.with_video_file_name(s.video_file_name)
        if s.screen_width and s.screen_height:
            self.with_display_resolution(s.screen_width, s.screen_height)
        if s.frame_rate:
            self.with_frame_rate(s.frame_rate)
        if s.codec:
            self.with_codec(s.codec)
        if s.preset:
            self.with_preset(s.preset)

    # region Config
    def with_display_container_name(self, name: str) -> "SeleniumRecordingContainer":
        self.settings.display_container_name = name
        return self.with_env(ENV_DISPLAY_CONTAINER_NAME, name)

    def with_video_file_name(self, name: str) -> "SeleniumRecordingContainer":
        if name == "auto":
            # The image's auto mode names files after the Selenium session,
            # which can't be looked up inside a stopped container
            raise ValueError("'auto' is currently not supported")
        self.settings.video_file_name = name
        return self.with_env(ENV_SE_VIDEO_FILE_NAME, name)

    def with_display_resolution(self, width: str | int, height: str | int) -> "SeleniumRecordingContainer":
        self.with_env(ENV_SE_SCREEN_WIDTH, str(width))
        self.with_env(ENV_SE_SCREEN_HEIGHT, str(height))
        self.resolution_configured = True
        return self

    def with_file_extension(self, file_extension: str) -> "SeleniumRecordingContainer":
        self.settings.file_extension = file_extension
        return self

    def with_frame_rate(self, frame_rate: str | int) -> "SeleniumRecordingContainer":
        return self.with_env(ENV_SE_FRAME_RATE, str(frame_rate))

    def with_codec(self, codec: str) -> "SeleniumRecordingContainer":
        return self.with_env(ENV_SE_CODEC, codec)

    def with_preset(self, preset: str) -> "SeleniumRecordingContainer":
        # Passed verbatim to ffmpeg; may need extra escaping
        return self.with_env(ENV_SE_PRESET, preset)
    # endregion

    @property
    def video_file_name(self) -> Optional[str]:
        return self.settings.video_file_name or self._derived_video_file_name

    def configure(self) -> None:
        # Runs on every start; derived values track the current browser container
        if self.target.network is not None:
            self.with_network(self.target.network)

        if self.settings.display_container_name is None:
            aliases = self.target.network_aliases
            self.with_env(
                ENV_DISPLAY_CONTAINER_NAME,
                aliases[0] if aliases else self.target.container_name_cleaned,
            )
        if self.settings.video_file_name is None:
            self._derived_video_file_name = (
                f"record-{self.target.container_id}.{self.settings.file_extension}"
            )
            self.with_env(ENV_SE_VIDEO_FILE_NAME, self._derived_video_file_name)
        if not self.resolution_configured:
            target_env = self.target.env
            self.with_env(ENV_SE_SCREEN_WIDTH, str(target_env.get(ENV_SE_SCREEN_WIDTH, DEFAULT_SCREEN_WIDTH)))
            self.with_env(ENV_SE_SCREEN_HEIGHT, str(target_env.get(ENV_SE_SCREEN_HEIGHT, DEFAULT_SCREEN_HEIGHT)))

    def save_recording_to_file(self, directory: Path, file_name_without_extension: str) -> Optional[Path]:
        if self.container_id is None:
            logger.debug("Recording container was never started, nothing to save")
            return None

        # Stop only: removing the container would delete the recording
        self.stop_no_remove()

        out_file = self.resolve_output_file(directory, file_name_without_extension)
        self.copy_recording(out_file)
        return out_file

    def resolve_output_file(self, directory: Path, file_name_without_extension: str) -> Path:
        name = self.video_file_name or ""
        extension = name.rsplit(".", 1)[1] if "." in name else ""
        return Path(directory) / f"{file_name_without_extension}.{extension}"

    def copy_recording(self, out_file: Path) -> None:
        self.copy_file_from_container(f"{VIDEO_DIR}/{self.video_file_name}", out_file)
