"""
NeckSense - Real-time tech neck monitoring
Desktop entry point (OpenCV window). Press 's' to start/stop the camera, 'q' to quit.
"""
from utils.logging_config import configure_silent_logging, configure_app_logging
configure_silent_logging()  # Must be first import

import logging

import cv2 as cv
import numpy as np

from config.defaults import CAMERA_SETTINGS, MODEL_SETTINGS
from core.capabilities import CaptureProfile
from core.errors import CaptureError, ModelLoadError
from core.pose_detector import PoseDetector
from core.session_loop import SessionLoop, SessionPhase
from utils.camera import OpenCvCamera, OpenCvRenderSink, draw_status
from utils.scheduler import FrameScheduler

logger = logging.getLogger("main")

WINDOW_NAME = "NeckSense - Tech Neck Detector"


class NeckSenseApp:
    """Main application class for NeckSense"""

    def __init__(self):
        self.pose_detector = PoseDetector(MODEL_SETTINGS['model_path'])
        self.scheduler = FrameScheduler()
        self.render_sink = OpenCvRenderSink()
        self.session = SessionLoop(
            source=self.pose_detector,
            capture=OpenCvCamera(),
            scheduler=self.scheduler,
            render=self.render_sink,
            profile=CaptureProfile.from_settings(CAMERA_SETTINGS),
        )
        self.message = "Press 's' to start the camera, 'q' to quit"

    def initialize(self) -> bool:
        """Load the pose model"""
        logger.info("Loading pose model...")
        try:
            self.pose_detector.initialize()
        except ModelLoadError as e:
            logger.error("%s (%s)", e.user_message, e)
            return False
        logger.info("NeckSense initialized successfully!")
        return True

    def toggle_camera(self):
        if self.session.phase is not SessionPhase.IDLE:
            self.session.stop()
            self.message = "Camera stopped. Press 's' to start again"
            return
        try:
            self.session.start()
            self.message = "Starting camera..."
        except CaptureError as e:
            self.message = e.user_message
            logger.error("Camera error (%s): %s", e.kind.value, e)

    def _current_view(self) -> np.ndarray:
        latest = self.render_sink.latest
        if latest is not None and self.session.running:
            state = self.session.state
            return draw_status(latest.copy(), state.last_result, state.detection_count)
        if self.session.last_error is not None:
            self.message = self.session.last_error.user_message
        blank = np.zeros((480, 640, 3), dtype=np.uint8)
        cv.putText(blank, self.message, (10, 240), cv.FONT_HERSHEY_SIMPLEX, 0.55, (255, 255, 255), 1, cv.LINE_AA)
        return blank

    def run(self):
        """Drive the frame scheduler once per display refresh"""
        logger.info("Press 's' to start/stop the camera, 'q' to quit")
        while True:
            self.scheduler.run_pending()
            cv.imshow(WINDOW_NAME, self._current_view())

            key = cv.waitKey(1) & 0xFF
            if key == ord('q'):
                break
            if key == ord('s'):
                self.toggle_camera()

        self.cleanup()

    def cleanup(self):
        """Clean up resources"""
        logger.info("Cleaning up...")
        self.session.stop()
        self.pose_detector.cleanup()
        cv.destroyAllWindows()
        logger.info("NeckSense stopped")


def main():
    """Main function"""
    configure_app_logging()
    app = NeckSenseApp()

    if app.initialize():
        try:
            app.run()
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            app.cleanup()
    else:
        logger.error("Failed to initialize NeckSense")


if __name__ == "__main__":
    main()
