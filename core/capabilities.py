"""
Capability interfaces injected into the session loop.

The session loop never reaches for a camera, a model or a window directly.
Hosts (the Streamlit app, the OpenCV demo, tests) hand it objects that
implement these interfaces:

    LandmarkSource  - pose estimator (MediaPipe in production)
    CaptureDevice   - acquires a CaptureHandle for a CaptureProfile
    CaptureHandle   - yields the current Frame, released on stop
    RenderSink      - receives skeletons + classification per processed frame
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np


@dataclass(frozen=True)
class Landmark:
    """A single normalized body landmark (x, y in [0,1]-ish image space)."""
    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = None


# One detected person: 33 positional landmarks, None where a joint is missing
Skeleton = Sequence[Optional[Landmark]]
ResultCallback = Callable[[List[Skeleton]], None]


@dataclass(frozen=True)
class Frame:
    """A decoded camera frame (BGR) and the capture timestamp in milliseconds."""
    image: np.ndarray
    timestamp_ms: float


@dataclass(frozen=True)
class CaptureProfile:
    """Requested camera capability profile."""
    ideal_width: int = 640
    ideal_height: int = 480
    min_width: int = 320
    min_height: int = 240
    max_width: int = 1280
    max_height: int = 720
    facing_mode: str = "user"
    camera_id: int = 0

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "CaptureProfile":
        fields = cls.__dataclass_fields__
        return cls(**{k: v for k, v in settings.items() if k in fields})

    def accepts(self, width: int, height: int) -> bool:
        """True if a negotiated resolution lies inside the min/max bounds."""
        return (
            self.min_width <= width <= self.max_width
            and self.min_height <= height <= self.max_height
        )

    def as_media_constraints(self) -> Dict[str, Any]:
        """Browser getUserMedia constraints (used by streamlit-webrtc)."""
        return {
            "video": {
                "width": {"ideal": self.ideal_width, "min": self.min_width, "max": self.max_width},
                "height": {"ideal": self.ideal_height, "min": self.min_height, "max": self.max_height},
                "facingMode": self.facing_mode,
            },
            "audio": False,
        }


class LandmarkSource(ABC):
    """Pose estimator adapter."""

    @abstractmethod
    def set_mode(self, streaming: bool) -> None:
        """Switch between single-image and streaming-video inference."""

    @abstractmethod
    def detect(self, frame: Frame, timestamp_ms: int, on_result: ResultCallback) -> None:
        """Submit one frame; on_result later receives zero or more skeletons."""


class CaptureHandle(ABC):

    @abstractmethod
    def read(self) -> Optional[Frame]:
        """Return the most recent decodable frame, or None if none is ready."""

    @abstractmethod
    def release(self) -> None: ...


class CaptureDevice(ABC):

    @abstractmethod
    def acquire(self, profile: CaptureProfile) -> CaptureHandle:
        """Open the camera. Raises core.errors.CaptureError on failure."""


class RenderSink(ABC):

    @abstractmethod
    def render(self, frame: Frame, skeletons: List[Skeleton], result: Optional[Any]) -> None: ...

    def clear(self) -> None:
        """Drop anything drawn for the previous session."""
