"""Configuration models for browser and recording containers."""

from __future__ import annotations

import json
import os
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RecordingMode(str, Enum):
    SKIP = "skip"
    RECORD_ALL = "record_all"
    RECORD_FAILING = "record_failing"

    def should_retain(self, succeeded: bool) -> bool:
        """Whether the recording of a finished test is kept."""
        if self is RecordingMode.RECORD_ALL:
            return True
        if self is RecordingMode.RECORD_FAILING:
            return not succeeded
        return False


class RecorderSettings(BaseModel):
    """Settings of the screen-recording sidecar.

    Fields left as ``None`` are derived from the browser container when the
    sidecar is configured.
    """
    model_config = ConfigDict(validate_assignment=True)

    image: str = "selenium/video:latest"
    display_container_name: Optional[str] = None
    video_file_name: Optional[str] = None
    screen_width: Optional[str] = None
    screen_height: Optional[str] = None
    frame_rate: Optional[str] = None  # image default: 15
    codec: Optional[str] = None  # image default: libx264
    preset: Optional[str] = None  # image default: "-preset ultrafast"
    file_extension: str = "mp4"

    @field_validator("video_file_name")
    @classmethod
    def reject_auto_file_name(cls, v: Optional[str]) -> Optional[str]:
        # The image's 'auto' mode names files per session, which can't be
        # located inside a stopped container
        if v == "auto":
            raise ValueError("'auto' is currently not supported")
        return v


class BrowserContainerSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    # Host integration
    map_timezone_into_container: bool = True

    # Image validation
    validate_image: bool = True
    validate_image_get_timeout_seconds: float = 300.0

    # VNC
    disable_vnc: bool = True
    expose_vnc_port: bool = False
    enable_no_vnc: bool = False

    # Recording
    recording_mode: RecordingMode = RecordingMode.SKIP
    recording_directory: Optional[Path] = None
    start_recording_container_manually: bool = False
    recording_save_timeout_seconds: float = 180.0
    # Default recorder runs at 15 FPS (~67ms per frame)
    before_recording_save_wait_seconds: Optional[float] = 0.07
    recorder: RecorderSettings = Field(default_factory=RecorderSettings)

    @field_validator("validate_image_get_timeout_seconds", "recording_save_timeout_seconds")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive")
        return v

    @field_validator("before_recording_save_wait_seconds")
    @classmethod
    def non_negative_wait(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("Wait time must not be negative")
        return v

    @field_validator("recording_directory", mode="before")
    @classmethod
    def resolve_env_directory(cls, v):
        if isinstance(v, str) and v.startswith("env:"):
            env_var = v[4:]
            resolved = os.environ.get(env_var)
            if resolved is None:
                raise ValueError(f"Environment variable '{env_var}' not set")
            return resolved
        return v


class RunConfig(BaseModel):
    """Config file consumed by the ``demo`` CLI command."""

    browsers: list[str] = Field(default_factory=lambda: ["chrome", "firefox"])
    selenium_version: Optional[str] = None
    container: BrowserContainerSettings = Field(
        default_factory=lambda: BrowserContainerSettings(
            recording_mode=RecordingMode.RECORD_ALL,
            recording_directory=Path("target/records"),
        )
    )
    # Page opened per browser; firefox has no chrome:// pages
    start_urls: dict[str, str] = Field(
        default_factory=lambda: {
            "chrome": "chrome://version",
            "MicrosoftEdge": "edge://version",
            "firefox": "about:support",
        }
    )
    simulated_work_seconds: float = 1.0

    @classmethod
    def load(cls, path: str | Path) -> "RunConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)
