import numpy as np
import pytest

from core.capabilities import CaptureProfile, Frame, Landmark
from core.errors import CaptureError, CaptureErrorKind
from core.posture_classifier import ClassificationResult
from utils import camera


class FakeVideoCapture:
    def __init__(self, opened=True, width=640, height=480):
        self.opened = opened
        self.size = {camera.cv.CAP_PROP_FRAME_WIDTH: width, camera.cv.CAP_PROP_FRAME_HEIGHT: height}
        self.released = False
        self.requested = {}

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.requested[prop] = value
        return True

    def get(self, prop):
        return self.size.get(prop, 0)

    def read(self):
        return True, np.zeros((480, 640, 3), dtype=np.uint8)

    def release(self):
        self.released = True


@pytest.fixture
def with_backends(monkeypatch):
    monkeypatch.setattr(camera.cv.videoio_registry, "getCameraBackends", lambda: [200])


def patch_capture(monkeypatch, cap):
    monkeypatch.setattr(camera.cv, "VideoCapture", lambda camera_id: cap)


def test_missing_device_node_is_not_found(tmp_path):
    err = camera.classify_open_failure(0, system="Linux", device_root=str(tmp_path))
    assert err.kind is CaptureErrorKind.DEVICE_NOT_FOUND


def test_existing_device_that_fails_to_open_is_busy(tmp_path):
    (tmp_path / "video1").touch()
    err = camera.classify_open_failure(1, system="Linux", device_root=str(tmp_path))
    assert err.kind is CaptureErrorKind.DEVICE_BUSY


def test_inaccessible_device_is_permission_denied(tmp_path, monkeypatch):
    (tmp_path / "video0").touch()
    monkeypatch.setattr(camera.os, "access", lambda path, mode: False)
    err = camera.classify_open_failure(0, system="Linux", device_root=str(tmp_path))
    assert err.kind is CaptureErrorKind.PERMISSION_DENIED


def test_other_platforms_report_not_found():
    assert camera.classify_open_failure(0, system="Darwin").kind is CaptureErrorKind.DEVICE_NOT_FOUND


def test_acquire_without_backends_is_unavailable(monkeypatch):
    monkeypatch.setattr(camera.cv.videoio_registry, "getCameraBackends", lambda: [])
    with pytest.raises(CaptureError) as excinfo:
        camera.OpenCvCamera().acquire(CaptureProfile())
    assert excinfo.value.kind is CaptureErrorKind.UNAVAILABLE


def test_acquire_requests_ideal_resolution(monkeypatch, with_backends):
    cap = FakeVideoCapture()
    patch_capture(monkeypatch, cap)

    handle = camera.OpenCvCamera().acquire(CaptureProfile())

    assert cap.requested[camera.cv.CAP_PROP_FRAME_WIDTH] == 640
    assert cap.requested[camera.cv.CAP_PROP_FRAME_HEIGHT] == 480
    assert handle.resolution == (640, 480)
    frame = handle.read()
    assert frame.image.shape == (480, 640, 3)

    handle.release()
    assert cap.released is True
    assert handle.read() is None


def test_acquire_rejects_resolution_outside_profile(monkeypatch, with_backends):
    cap = FakeVideoCapture(width=1920, height=1080)
    patch_capture(monkeypatch, cap)

    with pytest.raises(CaptureError) as excinfo:
        camera.OpenCvCamera().acquire(CaptureProfile())
    assert excinfo.value.kind is CaptureErrorKind.UNSUPPORTED
    assert cap.released is True


def test_acquire_classifies_open_failure(monkeypatch, with_backends):
    cap = FakeVideoCapture(opened=False)
    patch_capture(monkeypatch, cap)
    monkeypatch.setattr(camera, "classify_open_failure",
                        lambda camera_id: CaptureError(CaptureErrorKind.DEVICE_BUSY))

    with pytest.raises(CaptureError) as excinfo:
        camera.OpenCvCamera().acquire(CaptureProfile())
    assert excinfo.value.kind is CaptureErrorKind.DEVICE_BUSY
    assert cap.released is True


def test_push_camera_hands_latest_frame_to_session():
    device = camera.PushCamera()
    image = np.zeros((4, 4, 3), dtype=np.uint8)
    device.push(image, 1.0)  # no session yet: dropped

    handle = device.acquire(CaptureProfile())
    assert handle.read() is None
    device.push(image, 2.0)
    device.push(image, 3.0)
    assert handle.read().timestamp_ms == 3.0

    handle.release()
    device.push(image, 4.0)
    assert handle.read() is None


def test_draw_landmarks_skips_missing_points():
    image = np.zeros((100, 100, 3), dtype=np.uint8)
    skeleton = [Landmark(x=0.5, y=0.5) for _ in range(33)]
    skeleton[3] = None

    annotated = camera.draw_landmarks_on_image(image, skeleton)

    assert annotated is not image
    assert annotated.any()
    assert not image.any()


def test_render_sink_keeps_latest_annotated_frame():
    sink = camera.OpenCvRenderSink()
    frame = Frame(image=np.zeros((120, 160, 3), dtype=np.uint8), timestamp_ms=1.0)
    skeleton = [Landmark(x=0.5, y=0.6) for _ in range(33)]

    sink.render(frame, [skeleton], ClassificationResult(True, 20))

    assert sink.latest.shape == (120, 160, 3)
    assert sink.latest.any()
    assert not frame.image.any()

    sink.clear()
    assert sink.latest is None


@pytest.mark.parametrize("z, radius", [(-0.15, 5), (0.1, 1), (-1.0, 5), (1.0, 1)])
def test_landmark_radius_follows_depth(z, radius):
    assert camera._landmark_radius(z) == radius
