"""
Session Loop for NeckSense.

Drives one camera session frame by frame:

    IDLE --start()--> STARTING --first frame--> ACTIVE --stop()--> IDLE

Per display refresh (a FrameScheduler tick) while ACTIVE:
    1. Read the current frame from the capture handle.
    2. Skip it if its timestamp was already submitted (the display refreshes
       faster than the camera delivers frames) or a detection is in flight.
    3. Otherwise submit it to the LandmarkSource. The result callback
       classifies skeleton 0 only, bumps detection_count on tech neck and
       hands every skeleton plus the result to the render sink.
    4. Request the next tick.

The LandmarkSource is switched to streaming mode exactly once per session,
on the first frame, before anything is classified.

Ownership:
    SessionState, the capture handle and the render sink belong to one
    SessionLoop instance. All mutation happens under self._lock because
    MediaPipe LIVE_STREAM results arrive on MediaPipe's own thread.
    Rendering happens under self._render_lock only, so drawing never blocks
    the tick thread.

Failure semantics:
    - CaptureError from acquire(): phase returns to IDLE, error re-raised.
    - Exceptions from read() or detect(): logged, frame skipped, loop keeps
      running.
    - Any failure switching to streaming mode: stored in last_error as a
      ModelLoadError, session stopped.
    - A tick or result that arrives after stop() does nothing.
"""

from __future__ import annotations

import dataclasses
import enum
import functools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from config.defaults import CAMERA_SETTINGS, SESSION_SETTINGS
from core.capabilities import (
    CaptureDevice,
    CaptureHandle,
    CaptureProfile,
    Frame,
    LandmarkSource,
    RenderSink,
    Skeleton,
)
from core.errors import CaptureError, InferenceError, ModelLoadError, NeckSenseError
from core.posture_classifier import ClassificationResult, PostureClassifier
from utils.scheduler import FrameScheduler

logger = logging.getLogger(__name__)


class SessionPhase(enum.Enum):
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"


@dataclass
class SessionState:
    """Per-session counters. Reset on stop, recreated on start."""
    running: bool = False
    detection_count: int = 0
    last_frame_timestamp: Optional[float] = None
    # display fields
    last_result: Optional[ClassificationResult] = None
    poses_detected: int = 0
    frames_classified: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "detection_count": self.detection_count,
            "last_frame_timestamp": self.last_frame_timestamp,
            "poses_detected": self.poses_detected,
            "frames_classified": self.frames_classified,
            **(self.last_result.as_dict() if self.last_result else {}),
        }


class SessionLoop:
    """
    Capture/inference driver.

    Parameters:
        source:     LandmarkSource (e.g. core.pose_detector.PoseDetector)
        capture:    CaptureDevice (e.g. utils.camera.OpenCvCamera)
        scheduler:  FrameScheduler fired once per display refresh
        render:     optional RenderSink
        classifier: PostureClassifier (default thresholds if omitted)
        profile:    CaptureProfile (CAMERA_SETTINGS if omitted)
        settings:   overrides for SESSION_SETTINGS
    """

    def __init__(
        self,
        source: LandmarkSource,
        capture: CaptureDevice,
        scheduler: FrameScheduler,
        render: Optional[RenderSink] = None,
        classifier: Optional[PostureClassifier] = None,
        profile: Optional[CaptureProfile] = None,
        settings: Optional[Dict[str, Any]] = None,
    ):
        self._source = source
        self._capture = capture
        self._scheduler = scheduler
        self._render = render
        self._classifier = classifier or PostureClassifier()
        self.profile = profile or CaptureProfile.from_settings(CAMERA_SETTINGS)
        self.settings = dict(SESSION_SETTINGS)
        if settings:
            self.settings.update(settings)

        self._lock = threading.RLock()
        self._render_lock = threading.Lock()
        self._phase = SessionPhase.IDLE
        self._state = SessionState()
        self._handle: Optional[CaptureHandle] = None
        self._pending_tick: Optional[int] = None
        self._session_id = 0
        self._request_id = 0
        self._in_flight_since: Optional[float] = None
        self.last_error: Optional[NeckSenseError] = None

    # -----------------------------------------------------
    # Public API
    # -----------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        with self._lock:
            return self._phase

    @property
    def state(self) -> SessionState:
        """Snapshot of the current SessionState."""
        with self._lock:
            return dataclasses.replace(self._state)

    @property
    def running(self) -> bool:
        with self._lock:
            return self._state.running

    def start(self) -> SessionState:
        """
        Acquire the camera and begin polling frames.

        Raises CaptureError (after returning to IDLE) if the camera cannot be
        acquired. Calling start() on a session that is already starting or
        active does nothing.
        """
        with self._lock:
            if self._phase is not SessionPhase.IDLE:
                logger.warning("start() ignored: session already %s", self._phase.value)
                return dataclasses.replace(self._state)
            self._phase = SessionPhase.STARTING
            self.last_error = None

        try:
            handle = self._capture.acquire(self.profile)
        except CaptureError as e:
            with self._lock:
                self._phase = SessionPhase.IDLE
                self.last_error = e
            logger.warning("Camera acquisition failed (%s): %s", e.kind.value, e)
            raise
        except Exception:
            with self._lock:
                self._phase = SessionPhase.IDLE
            raise

        with self._lock:
            if self._phase is not SessionPhase.STARTING:
                # stop() ran while we were waiting on the camera
                handle.release()
                return dataclasses.replace(self._state)
            self._handle = handle
            self._session_id += 1
            self._state = SessionState(running=True)
            self._in_flight_since = None
            self._pending_tick = self._scheduler.request(self._tick)
            logger.info("Session %d starting; waiting for first frame", self._session_id)
            return dataclasses.replace(self._state)

    def stop(self) -> None:
        """Cancel the pending tick, release the camera and reset state."""
        with self._lock:
            if self._phase is SessionPhase.IDLE and self._handle is None:
                return
            self._scheduler.cancel(self._pending_tick)
            self._pending_tick = None
            handle, self._handle = self._handle, None
            self._phase = SessionPhase.IDLE
            self._state = SessionState()
            self._session_id += 1
            self._in_flight_since = None
            if handle is not None:
                handle.release()
        # waits out a render already in progress; later ones see the new session id
        if self._render is not None:
            with self._render_lock:
                self._render.clear()
        logger.info("Session stopped")

    # -----------------------------------------------------
    # Frame loop
    # -----------------------------------------------------

    def _tick(self, now_ms: float) -> None:
        with self._lock:
            self._pending_tick = None
            if not self._state.running or self._handle is None:
                return
            handle = self._handle
            session_id = self._session_id
            phase = self._phase

        try:
            frame = handle.read()
        except Exception as e:
            logger.warning("Camera read failed: %s; skipping frame", e)
            frame = None
        if frame is None:
            self._reschedule(session_id)
            return

        if phase is SessionPhase.STARTING and not self._enter_active(session_id):
            return

        request_id = self._claim_frame(session_id, frame, now_ms)
        if request_id is not None:
            on_result = functools.partial(self._on_result, session_id, request_id, frame)
            try:
                self._source.detect(frame, int(frame.timestamp_ms), on_result)
            except Exception as e:
                err = InferenceError(f"Pose inference failed at {frame.timestamp_ms:.0f} ms: {e}")
                logger.warning("%s; skipping frame", err)
                with self._lock:
                    if self._request_id == request_id:
                        self._in_flight_since = None

        self._reschedule(session_id)

    def _enter_active(self, session_id: int) -> bool:
        try:
            self._source.set_mode(True)
        except Exception as e:
            err = e
            if not isinstance(e, NeckSenseError):
                err = ModelLoadError(f"Failed to switch pose model to streaming mode: {e}")
                err.__cause__ = e
            logger.error("Could not switch pose model to streaming mode: %s", e)
            with self._lock:
                if self._session_id == session_id:
                    self.last_error = err
            self.stop()
            return False

        with self._lock:
            if self._session_id != session_id or not self._state.running:
                return False
            self._phase = SessionPhase.ACTIVE
        logger.info("First frame received; streaming inference enabled")
        return True

    def _claim_frame(self, session_id: int, frame: Frame, now_ms: float) -> Optional[int]:
        """Reserve the single in-flight slot for a new frame, or return None."""
        with self._lock:
            if self._session_id != session_id or not self._state.running:
                return None

            if self._in_flight_since is not None:
                waited = now_ms - self._in_flight_since
                if waited <= self.settings["inference_timeout_ms"]:
                    return None
                logger.warning("No pose result after %.0f ms; abandoning request", waited)
                self._in_flight_since = None

            if frame.timestamp_ms == self._state.last_frame_timestamp:
                return None

            self._state.last_frame_timestamp = frame.timestamp_ms
            self._in_flight_since = now_ms
            self._request_id += 1
            return self._request_id

    def _on_result(self, session_id: int, request_id: int, frame: Frame, skeletons: List[Skeleton]) -> None:
        with self._lock:
            if self._session_id != session_id or not self._state.running:
                return
            if request_id != self._request_id:
                logger.debug("Discarding late pose result for abandoned request %d", request_id)
                return
            self._in_flight_since = None

            result = None
            if skeletons:
                result = self._classifier.classify(skeletons[0])
                self._state.frames_classified += 1
                if result.has_tech_neck:
                    self._state.detection_count += 1
            self._state.last_result = result
            self._state.poses_detected = len(skeletons)

        if self._render is None:
            return
        with self._render_lock:
            with self._lock:
                if self._session_id != session_id:
                    return
            try:
                self._render.render(frame, list(skeletons), result)
            except Exception as e:
                logger.error("Render failed: %s", e)

    def _reschedule(self, session_id: int) -> None:
        with self._lock:
            if self._session_id != session_id or not self._state.running:
                return
            self._pending_tick = self._scheduler.request(self._tick)
