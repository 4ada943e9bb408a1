"""Per-test recording outcome."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class RecordingOutcome(BaseModel):
    test_name: str
    succeeded: bool
    wait_before_save_seconds: Optional[float] = None
    save_timeout_seconds: float = 180.0
    recording_path: Optional[str] = None  # set once the file was copied out
