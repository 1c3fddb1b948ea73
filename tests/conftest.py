from typing import List, Optional

import numpy as np
import pytest

from core.capabilities import (
    CaptureDevice,
    CaptureHandle,
    Frame,
    Landmark,
    LandmarkSource,
    RenderSink,
)
from core.session_loop import SessionLoop
from utils.scheduler import FrameScheduler


def make_skeleton(ear_x=0.5, ear_y=0.3, shoulder_x=0.5, shoulder_y=0.5, count=33):
    """33 landmarks at the centre, with both ears and both shoulders overridden."""
    points = [Landmark(x=0.5, y=0.5) for _ in range(count)]
    for idx in (7, 8):
        if idx < count:
            points[idx] = Landmark(x=ear_x, y=ear_y)
    for idx in (11, 12):
        if idx < count:
            points[idx] = Landmark(x=shoulder_x, y=shoulder_y)
    return points


# neck length 1.0, forward ratio 0.5 / 0.0
TECH_NECK = make_skeleton(ear_x=0.5, ear_y=0.0, shoulder_x=0.0, shoulder_y=1.0)
GOOD_POSTURE = make_skeleton(ear_x=0.0, ear_y=0.0, shoulder_x=0.0, shoulder_y=1.0)


def make_frame(timestamp_ms: float) -> Frame:
    return Frame(image=np.zeros((48, 64, 3), dtype=np.uint8), timestamp_ms=timestamp_ms)


class FakeSource(LandmarkSource):
    """Landmark source returning canned skeletons, immediately or on demand."""

    def __init__(self, skeletons=None, deferred=False):
        self.skeletons = [GOOD_POSTURE] if skeletons is None else skeletons
        self.deferred = deferred
        self.modes: List[bool] = []
        self.calls: List[tuple] = []
        self.pending: List = []
        self.fail_next = 0
        self.mode_error: Optional[Exception] = None

    def set_mode(self, streaming):
        if self.mode_error is not None:
            raise self.mode_error
        self.modes.append(streaming)

    def detect(self, frame, timestamp_ms, on_result):
        self.calls.append((frame, timestamp_ms))
        if self.fail_next:
            self.fail_next -= 1
            raise RuntimeError("backend hiccup")
        if self.deferred:
            self.pending.append(on_result)
        else:
            on_result(list(self.skeletons))

    def deliver(self, skeletons=None, index=0):
        on_result = self.pending.pop(index)
        on_result(list(self.skeletons if skeletons is None else skeletons))


class FakeHandle(CaptureHandle):
    def __init__(self):
        self.frame: Optional[Frame] = None
        self.released = False
        self.read_error: Optional[Exception] = None

    def read(self):
        if self.read_error is not None:
            error, self.read_error = self.read_error, None
            raise error
        return self.frame

    def release(self):
        self.released = True


class FakeCamera(CaptureDevice):
    def __init__(self, error=None):
        self.error = error
        self.profiles = []
        self.handles: List[FakeHandle] = []

    def acquire(self, profile):
        self.profiles.append(profile)
        if self.error is not None:
            raise self.error
        handle = FakeHandle()
        self.handles.append(handle)
        return handle

    @property
    def handle(self) -> FakeHandle:
        return self.handles[-1]


class RecordingSink(RenderSink):
    def __init__(self):
        self.rendered = []
        self.cleared = 0

    def render(self, frame, skeletons, result):
        self.rendered.append((frame, skeletons, result))

    def clear(self):
        self.cleared += 1


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def camera():
    return FakeCamera()


@pytest.fixture
def scheduler():
    return FrameScheduler(clock=lambda: 0.0)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def loop(source, camera, scheduler, sink):
    return SessionLoop(source=source, capture=camera, scheduler=scheduler, render=sink)
