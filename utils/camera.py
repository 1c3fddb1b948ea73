"""
Camera capture and landmark rendering utilities
"""
import logging
import os
import platform
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import cv2 as cv
import numpy as np

from core.capabilities import CaptureDevice, CaptureHandle, CaptureProfile, Frame, RenderSink, Skeleton
from core.errors import CaptureError, CaptureErrorKind

logger = logging.getLogger(__name__)


def classify_open_failure(camera_id: int, system: Optional[str] = None, device_root: str = "/dev") -> CaptureError:
    """Best-effort reason for cv.VideoCapture failing to open a device"""
    system = system or platform.system()
    if system == "Linux":
        device = Path(device_root) / f"video{camera_id}"
        if not device.exists():
            return CaptureError(CaptureErrorKind.DEVICE_NOT_FOUND, f"{device} does not exist")
        if not os.access(device, os.R_OK | os.W_OK):
            return CaptureError(CaptureErrorKind.PERMISSION_DENIED, f"No read/write access to {device}")
        return CaptureError(CaptureErrorKind.DEVICE_BUSY, f"{device} exists but could not be opened")
    # macOS / Windows do not expose enough to tell permission from absence
    return CaptureError(CaptureErrorKind.DEVICE_NOT_FOUND, f"Camera {camera_id} could not be opened")


class OpenCvCaptureHandle(CaptureHandle):
    """An opened cv.VideoCapture"""

    def __init__(self, cap, resolution: Tuple[int, int], clock: Callable[[], float] = time.monotonic):
        self.cap = cap
        self.resolution = resolution
        self._clock = clock

    def read(self) -> Optional[Frame]:
        if self.cap is None:
            return None
        ret, image = self.cap.read()
        if not ret or image is None:
            return None
        return Frame(image=image, timestamp_ms=self._clock() * 1000.0)

    def release(self):
        """Release camera resources"""
        if self.cap:
            self.cap.release()
            self.cap = None


class OpenCvCamera(CaptureDevice):
    """Acquire a local camera through OpenCV"""

    def acquire(self, profile: CaptureProfile) -> OpenCvCaptureHandle:
        if not cv.videoio_registry.getCameraBackends():
            raise CaptureError(CaptureErrorKind.UNAVAILABLE, "OpenCV was built without camera backends")

        cap = cv.VideoCapture(profile.camera_id)
        if not cap.isOpened():
            cap.release()
            raise classify_open_failure(profile.camera_id)

        cap.set(cv.CAP_PROP_FRAME_WIDTH, profile.ideal_width)
        cap.set(cv.CAP_PROP_FRAME_HEIGHT, profile.ideal_height)
        width = int(cap.get(cv.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv.CAP_PROP_FRAME_HEIGHT))

        # Some drivers report 0x0 until the first read; treat that as unknown
        if width and height and not profile.accepts(width, height):
            cap.release()
            raise CaptureError(CaptureErrorKind.UNSUPPORTED, f"Camera negotiated {width}x{height}")

        logger.info("Camera %d opened at %dx%d", profile.camera_id, width, height)
        return OpenCvCaptureHandle(cap, (width, height))


class PushCaptureHandle(CaptureHandle):
    """Holds the latest frame pushed by a host callback (e.g. WebRTC recv)"""

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Optional[Frame] = None
        self.released = False

    def push(self, image: np.ndarray, timestamp_ms: float) -> None:
        with self._lock:
            if not self.released:
                self._latest = Frame(image=image, timestamp_ms=timestamp_ms)

    def read(self) -> Optional[Frame]:
        with self._lock:
            return self._latest

    def release(self):
        with self._lock:
            self.released = True
            self._latest = None


class PushCamera(CaptureDevice):
    """
    Capture device for hosts where the browser already owns the camera.

    The browser applies the CaptureProfile as getUserMedia constraints, so
    acquire() only hands out a fresh push handle.
    """

    def __init__(self):
        self.handle: Optional[PushCaptureHandle] = None

    def acquire(self, profile: CaptureProfile) -> PushCaptureHandle:
        self.handle = PushCaptureHandle()
        return self.handle

    def push(self, image: np.ndarray, timestamp_ms: float) -> None:
        handle = self.handle
        if handle is not None:
            handle.push(image, timestamp_ms)


# Body connections of the 33-point MediaPipe pose model
POSE_CONNECTIONS = [
    # Face
    (0, 1), (1, 2), (2, 3), (3, 7), (0, 4), (4, 5), (5, 6), (6, 8), (9, 10),
    # Arms
    (11, 12), (11, 13), (13, 15), (15, 17), (15, 19), (15, 21), (17, 19),
    (12, 14), (14, 16), (16, 18), (16, 20), (16, 22), (18, 20),
    # Body
    (11, 23), (12, 24), (23, 24),
    # Legs
    (23, 25), (25, 27), (27, 29), (27, 31), (29, 31), (24, 26), (26, 28), (28, 30), (28, 32), (30, 32),
]

GOOD_COLOR = (0, 200, 0)  # BGR
ALERT_COLOR = (0, 0, 230)
NEUTRAL_COLOR = (200, 200, 200)


def _landmark_radius(z: float) -> int:
    # Closer points (more negative z) are drawn larger: z in [-0.15, 0.1] -> radius 5..1
    t = (min(max(z, -0.15), 0.1) + 0.15) / 0.25
    return int(round(5 + (1 - 5) * t))


def draw_landmarks_on_image(image: np.ndarray, landmarks: Skeleton, color=GOOD_COLOR) -> np.ndarray:
    """Draw one skeleton's landmarks and connections on a copy of the image"""
    if not landmarks:
        return image

    annotated_image = image.copy()
    height, width = annotated_image.shape[:2]

    for start_idx, end_idx in POSE_CONNECTIONS:
        if end_idx >= len(landmarks):
            continue
        start, end = landmarks[start_idx], landmarks[end_idx]
        if start is None or end is None:
            continue
        start_point = (int(start.x * width), int(start.y * height))
        end_point = (int(end.x * width), int(end.y * height))
        cv.line(annotated_image, start_point, end_point, NEUTRAL_COLOR, 2)

    for landmark in landmarks:
        if landmark is None:
            continue
        x = int(landmark.x * width)
        y = int(landmark.y * height)
        cv.circle(annotated_image, (x, y), _landmark_radius(landmark.z), color, -1)

    return annotated_image


def draw_status(image: np.ndarray, result, detection_count: Optional[int] = None) -> np.ndarray:
    """Overlay the tech neck verdict and score in the top-left corner"""
    if result is None:
        text, color = "No person detected", NEUTRAL_COLOR
    elif result.has_tech_neck:
        text, color = f"Tech neck! Score {result.score}", ALERT_COLOR
    else:
        text, color = f"Good posture. Score {result.score}", GOOD_COLOR
    if detection_count is not None:
        text += f" | Detections: {detection_count}"

    cv.rectangle(image, (0, 0), (image.shape[1], 32), (0, 0, 0), -1)
    cv.putText(image, text, (10, 22), cv.FONT_HERSHEY_SIMPLEX, 0.6, color, 2, cv.LINE_AA)
    return image


class OpenCvRenderSink(RenderSink):
    """Keeps the most recent annotated frame for the host to display"""

    def __init__(self, show_overlay: bool = True):
        self.show_overlay = show_overlay
        self._lock = threading.Lock()
        self._latest: Optional[np.ndarray] = None

    def render(self, frame: Frame, skeletons: List[Skeleton], result) -> None:
        annotated = frame.image.copy()
        if self.show_overlay:
            for i, skeleton in enumerate(skeletons):
                # Only skeleton 0 is classified; others are drawn neutral
                if i == 0 and result is not None and result.has_tech_neck:
                    color = ALERT_COLOR
                elif i == 0:
                    color = GOOD_COLOR
                else:
                    color = NEUTRAL_COLOR
                annotated = draw_landmarks_on_image(annotated, skeleton, color)
        draw_status(annotated, result)
        with self._lock:
            self._latest = annotated

    @property
    def latest(self) -> Optional[np.ndarray]:
        with self._lock:
            return self._latest

    def clear(self) -> None:
        with self._lock:
            self._latest = None
