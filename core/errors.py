"""
Error taxonomy for NeckSense.

Capture and model-load failures are surfaced to the UI layer with a
user-facing message. Per-frame inference failures are wrapped in
InferenceError, logged by the session loop and never propagated.
"""

from __future__ import annotations

import enum
from typing import Optional

from config.defaults import ERROR_MESSAGES


class NeckSenseError(Exception):
    """Base class for all NeckSense errors."""

    message_key: Optional[str] = None

    @property
    def user_message(self) -> str:
        if self.message_key and self.message_key in ERROR_MESSAGES:
            return ERROR_MESSAGES[self.message_key]
        return str(self)


class CaptureErrorKind(enum.Enum):
    UNAVAILABLE = "capture_unavailable"
    PERMISSION_DENIED = "permission_denied"
    DEVICE_NOT_FOUND = "device_not_found"
    DEVICE_BUSY = "device_busy"
    UNSUPPORTED = "unsupported"


class CaptureError(NeckSenseError):
    """Camera acquisition failed. Terminal for one start attempt; never retried."""

    def __init__(self, kind: CaptureErrorKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.message_key = kind.value

    @property
    def retryable(self) -> bool:
        """Whether the user may sensibly retry manually (device may free up)."""
        return self.kind in (
            CaptureErrorKind.PERMISSION_DENIED,
            CaptureErrorKind.DEVICE_NOT_FOUND,
            CaptureErrorKind.DEVICE_BUSY,
        )


class ModelLoadError(NeckSenseError):
    """The pose landmarker could not be created. Recovery is a reload."""

    message_key = "model_load_failed"


class InferenceError(NeckSenseError):
    """A single frame's detection call failed."""
