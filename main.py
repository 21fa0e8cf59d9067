"""
SlouchGuard - Real-time slouch monitoring
Desktop entry point (OpenCV window)

Keys: p = pause/resume, r = recalibrate, v = toggle visualization, q = quit
"""
from slouchguard.utils.logging_config import configure_logging

logger = configure_logging()  # Must run before MediaPipe is imported

import cv2 as cv

from slouchguard.config.defaults import ALERT_MESSAGES, ALERT_SOUND_FILE, COLOR_HINTS
from slouchguard.config.settings import EngineConfig
from slouchguard.core.processing import FrameProcessor
from slouchguard.core.session import PostureSession, SessionState
from slouchguard.utils.camera import CameraManager, draw_overlay, draw_status
from slouchguard.utils.system_notifier import SystemNotifier

WINDOW_NAME = 'SlouchGuard'


class SlouchGuardApp:
    """Main application class for SlouchGuard"""

    def __init__(self, config: EngineConfig):
        self.camera_manager = CameraManager()
        self.processor = FrameProcessor()
        self.session = PostureSession(self.processor, config=config)
        self.notifier = SystemNotifier()
        self.running = False
        self.status_text = "Loading AI model..."
        self.status_color = COLOR_HINTS['calibrating']

        self.session.on_tick(self._on_tick)
        self.session.on_calibration_progress(self._on_calibration_progress)
        self.session.on_calibration_finished(self._on_calibration_finished)

    def initialize(self) -> bool:
        """Initialize all components"""
        logger.info("Initializing SlouchGuard...")

        if not self.camera_manager.initialize():
            logger.error("Could not initialize camera")
            return False

        if not self.processor.initialize():
            logger.error("Could not initialize pose detector")
            return False

        logger.info("SlouchGuard initialized successfully!")
        return True

    # ---- Session listeners ----

    def _on_tick(self, result):
        self.status_text = result.message
        self.status_color = result.color_hint
        if result.should_alert:
            self.notifier.play_sound(ALERT_SOUND_FILE)
            self.notifier.notify("SlouchGuard", ALERT_MESSAGES['slouching'])

    def _on_calibration_progress(self, progress):
        self.status_text = progress.message
        self.status_color = progress.color_hint

    def _on_calibration_finished(self, outcome):
        if outcome.succeeded:
            self.status_text = ALERT_MESSAGES['calibration_complete']
            self.status_color = COLOR_HINTS['good']
        else:
            self.status_text = ALERT_MESSAGES['calibration_failed'] + " Press 'r' to retry."
            self.status_color = COLOR_HINTS['no_subject']

    # ---- Controls ----

    def _handle_key(self, key: int) -> bool:
        if key == ord('q'):
            return False
        if key == ord('p'):
            if self.session.state is SessionState.PAUSED:
                self.session.resume()
                self.status_text = ALERT_MESSAGES['resumed']
            elif self.session.pause():
                self.status_text = ALERT_MESSAGES['paused']
        elif key == ord('r'):
            self.session.recalibrate()
        elif key == ord('v'):
            self.session.toggle_visualization()
        return True

    def _current_overlay(self):
        """Landmarks and colour from the most recent tick"""
        if self.session.state is SessionState.CALIBRATING and self.session.last_progress:
            return self.session.last_progress.detection, COLOR_HINTS['calibrating']
        if self.session.state is SessionState.MONITORING and self.session.last_result:
            return self.session.last_result.detection, self.session.last_result.color_hint
        return None, self.status_color

    def run(self):
        """Capture, tick, render"""
        logger.info("Press 'p' to pause, 'r' to recalibrate, 'v' to toggle overlay, 'q' to quit")
        self.running = True
        self.session.start()

        while self.running:
            ret, bgr_frame = self.camera_manager.read_frame()
            if not ret or bgr_frame is None:
                logger.error("Could not read frame")
                break

            self.processor.submit_frame(bgr_frame)
            self.session.poll()

            landmarks, color = self._current_overlay()
            frame = draw_overlay(bgr_frame, landmarks, color, self.session.visualization_enabled)
            frame = draw_status(frame, self.status_text, self.status_color)
            cv.imshow(WINDOW_NAME, frame)

            key = cv.waitKey(1) & 0xFF
            if key != 0xFF and not self._handle_key(key):
                break

        self.cleanup()

    def cleanup(self):
        """Clean up resources"""
        logger.info("Cleaning up...")
        self.running = False
        self.session.stop()
        self.camera_manager.release()
        self.processor.cleanup()
        cv.destroyAllWindows()
        logger.info("SlouchGuard stopped")


def main():
    """Main function"""
    app = SlouchGuardApp(EngineConfig.from_env())

    if app.initialize():
        try:
            app.run()
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            app.cleanup()
    else:
        logger.error("Failed to initialize SlouchGuard")


if __name__ == "__main__":
    main()
