"""
MediaPipe-based pose detection for NeckSense (the session loop's LandmarkSource)
"""
import os

# Suppress verbose C++ / framework logs
os.environ.setdefault("GLOG_minloglevel", "2")  # 0=INFO,1=WARNING,2=ERROR,3=FATAL
os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "2")  # TensorFlow logging
os.environ.setdefault("MEDIAPIPE_DISABLE_GPU", "1")  # Force CPU inference

import logging
import threading
from typing import Dict, List, Optional

import cv2 as cv
import mediapipe as mp

from config.defaults import MODEL_SETTINGS
from core.capabilities import Frame, Landmark, LandmarkSource, ResultCallback, Skeleton
from core.errors import InferenceError, ModelLoadError

logger = logging.getLogger(__name__)


def to_skeletons(result) -> List[Skeleton]:
    """Convert a PoseLandmarkerResult into plain Landmark skeletons."""
    if result is None or not getattr(result, "pose_landmarks", None):
        return []
    skeletons: List[Skeleton] = []
    for pose in result.pose_landmarks:
        skeletons.append([
            Landmark(
                x=float(lm.x),
                y=float(lm.y),
                z=float(lm.z or 0.0),
                visibility=None if getattr(lm, "visibility", None) is None else float(lm.visibility),
            )
            if lm is not None else None
            for lm in pose
        ])
    return skeletons


class PoseDetector(LandmarkSource):
    """Pose detection using MediaPipe (IMAGE mode until switched to LIVE_STREAM)"""

    def __init__(self, model_path: Optional[str] = None, settings: Optional[dict] = None):
        self.settings = dict(MODEL_SETTINGS)
        if settings:
            self.settings.update(settings)
        self.model_path = model_path or self.settings["model_path"]
        self.landmarker = None
        self.streaming = False

        self._callbacks: Dict[int, ResultCallback] = {}
        self._callbacks_lock = threading.Lock()
        self._last_timestamp_ms = -1

        # MediaPipe classes
        self.BaseOptions = mp.tasks.BaseOptions
        self.PoseLandmarker = mp.tasks.vision.PoseLandmarker
        self.PoseLandmarkerOptions = mp.tasks.vision.PoseLandmarkerOptions
        self.VisionRunningMode = mp.tasks.vision.RunningMode

    def _result_callback(self, result, output_image, timestamp_ms: int):
        """LIVE_STREAM results arrive here on MediaPipe's thread"""
        with self._callbacks_lock:
            on_result = self._callbacks.pop(timestamp_ms, None)
        if on_result is None:
            logger.debug("Dropping pose result for unknown timestamp %s", timestamp_ms)
            return
        on_result(to_skeletons(result))

    def _build_options(self, streaming: bool):
        kwargs = dict(
            base_options=self.BaseOptions(model_asset_path=self.model_path),
            running_mode=self.VisionRunningMode.LIVE_STREAM if streaming else self.VisionRunningMode.IMAGE,
            num_poses=int(self.settings["num_poses"]),
            min_pose_detection_confidence=self.settings["min_pose_detection_confidence"],
            min_pose_presence_confidence=self.settings["min_pose_presence_confidence"],
            min_tracking_confidence=self.settings["min_tracking_confidence"],
            output_segmentation_masks=False,
        )
        if streaming:
            kwargs["result_callback"] = self._result_callback
        return self.PoseLandmarkerOptions(**kwargs)

    def initialize(self) -> None:
        """Create the landmarker in single-image mode. Raises ModelLoadError."""
        self._create(streaming=False)

    def _create(self, streaming: bool) -> None:
        try:
            landmarker = self.PoseLandmarker.create_from_options(self._build_options(streaming))
        except Exception as e:
            raise ModelLoadError(f"Failed to create pose landmarker from {self.model_path}: {e}") from e
        if self.landmarker is not None:
            try:
                self.landmarker.close()
            except Exception as e:
                logger.warning("Error closing previous pose landmarker: %s", e)
        self.landmarker = landmarker
        self.streaming = streaming
        logger.info("PoseDetector ready (mode=%s, model=%s)", "LIVE_STREAM" if streaming else "IMAGE", self.model_path)

    def set_mode(self, streaming: bool) -> None:
        """MediaPipe cannot change running mode in place, so the landmarker is recreated."""
        if self.landmarker is not None and self.streaming == streaming:
            return
        with self._callbacks_lock:
            self._callbacks.clear()
        self._create(streaming)

    def detect(self, frame: Frame, timestamp_ms: int, on_result: ResultCallback) -> None:
        if self.landmarker is None:
            raise InferenceError("Pose detector is not initialized")

        rgb = cv.cvtColor(frame.image, cv.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)

        if not self.streaming:
            on_result(to_skeletons(self.landmarker.detect(mp_image)))
            return

        # LIVE_STREAM requires strictly increasing integer timestamps
        ts = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = ts
        with self._callbacks_lock:
            # Results MediaPipe dropped never come back
            for stale in [k for k in self._callbacks if k < ts - 10_000]:
                del self._callbacks[stale]
            self._callbacks[ts] = on_result
        try:
            self.landmarker.detect_async(mp_image, ts)
        except Exception:
            with self._callbacks_lock:
                self._callbacks.pop(ts, None)
            raise

    def cleanup(self):
        """Clean up resources"""
        if self.landmarker:
            self.landmarker.close()
            self.landmarker = None
            self.streaming = False
            logger.debug("PoseDetector cleaned up")
