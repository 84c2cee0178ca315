"""
Mood stabilizer application loop.

Coordinates camera capture, live face tracking, the feed session and the
overlay window. This is the main entry point used by the CLI.
"""

import logging
import time
from typing import Callable, Optional, Tuple

import cv2
import numpy as np

from .config import StabilizerConfig
from .expression import ExpressionEstimator, FacePolicy
from .messages import load_message_store
from .renderer import FeedRenderer
from .session import FrameReport, MoodSession
from .tracker import FaceTracker, ObservationSlot

logger = logging.getLogger(__name__)

QUIT_KEYS = (ord('q'), 27)


class MoodStabilizerApp:
    """
    Webcam-driven chat feed whose mood follows the viewer's expression.

    Coordinates:
    - Camera capture
    - MediaPipe face tracking (asynchronous)
    - Expression -> sentiment window -> message feed session
    - Overlay rendering in a resizable window

    Usage:
        app = MoodStabilizerApp(StabilizerConfig())
        app.run()
    """

    def __init__(
        self,
        config: Optional[StabilizerConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Args:
            config: Application settings (defaults if None)
            clock: Monotonic time source in seconds (time.monotonic if None)
        """
        self.config = config or StabilizerConfig()
        self._clock = clock or time.monotonic
        self._start_time = self._clock()

        self.slot = ObservationSlot()
        self.session = MoodSession(
            load_message_store(self.config.messages_path),
            now_ms=0.0,
            slot=self.slot,
            estimator=ExpressionEstimator(
                clamp=self.config.clamp_expression,
                policy=FacePolicy(self.config.face_policy),
            ),
            capacity=self.config.feed_capacity,
            min_interval_ms=self.config.min_interval_ms,
            max_interval_ms=self.config.max_interval_ms,
            half_width=self.config.window_half_width,
            rng=np.random.default_rng(self.config.seed),
        )
        self.renderer = FeedRenderer(username=self.config.username)

        # Components (initialized lazily)
        self._camera: Optional[cv2.VideoCapture] = None
        self._tracker: Optional[FaceTracker] = None
        self._window_open = False

        self._running = False
        self._last_frame: Optional[np.ndarray] = None
        self._last_report: Optional[FrameReport] = None

    def now_ms(self) -> float:
        """Milliseconds since the app was created."""
        return (self._clock() - self._start_time) * 1000.0

    @property
    def last_report(self) -> Optional[FrameReport]:
        return self._last_report

    def _init_camera(self) -> bool:
        if self._camera is not None:
            return True

        self._camera = cv2.VideoCapture(self.config.camera_id)
        if not self._camera.isOpened():
            self._camera = None
            return False

        self._camera.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.frame_width)
        self._camera.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.frame_height)
        logger.info(f"Camera {self.config.camera_id} initialized")
        return True

    def _init_tracker(self) -> bool:
        """Start face tracking; the session stays UNAVAILABLE if this fails."""
        if self._tracker is not None:
            return True

        tracker = FaceTracker(
            self.slot,
            max_faces=self.config.max_faces,
            refine_landmarks=self.config.refine_landmarks,
            mirror_input=self.config.mirror_input,
            min_detection_confidence=self.config.min_detection_confidence,
            model_path=self.config.model_path,
            on_ready=self.session.mark_ready,
        )
        try:
            tracker.start()
        except (ImportError, RuntimeError, OSError) as e:
            logger.warning(f"Face tracking unavailable: {e}")
            return False

        self._tracker = tracker
        return True

    def _init_window(self) -> None:
        if self._window_open:
            return
        cv2.namedWindow(self.config.window_name, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(self.config.window_name, self.config.canvas_width, self.config.canvas_height)
        self._window_open = True

    def initialize(self) -> None:
        """
        Open the camera, start tracking and create the window.

        Raises:
            RuntimeError: If the camera cannot be opened
        """
        if not self._init_camera():
            raise RuntimeError(f"Failed to open camera {self.config.camera_id}")

        if not self._init_tracker():
            logger.warning("Continuing without face tracking, sentiment window stays fixed")

        self._init_window()

    def viewport(self) -> Tuple[int, int]:
        """Current window size, read fresh every frame."""
        if self._window_open:
            try:
                _, _, w, h = cv2.getWindowImageRect(self.config.window_name)
            except cv2.error:
                w = h = -1
            if w > 0 and h > 0:
                return w, h
        return self.config.canvas_width, self.config.canvas_height

    def process_frame(self, frame: Optional[np.ndarray]) -> Tuple[np.ndarray, FrameReport]:
        """
        Run one frame: submit to the tracker, update the session, render.

        Args:
            frame: BGR camera frame, or None if none was captured

        Returns:
            Tuple of (rendered overlay, frame report)
        """
        now = self.now_ms()

        if frame is not None:
            self._last_frame = frame
            if self._tracker is not None and self._tracker.is_ready:
                try:
                    self._tracker.submit(frame, int(now))
                except (RuntimeError, ValueError) as e:
                    logger.warning(f"Frame not submitted for tracking: {e}")

        report = self.session.update(now)
        self._last_report = report

        canvas = self.renderer.render(
            self._last_frame,
            self.session.feed.newest_first(),
            self.viewport(),
        )
        return canvas, report

    def step(self) -> Optional[FrameReport]:
        """
        Capture, process and display one frame.

        Returns:
            FrameReport, or None if the camera is not open
        """
        if self._camera is None:
            return None

        ret, frame = self._camera.read()
        canvas, report = self.process_frame(frame if ret else None)

        if self._window_open:
            cv2.imshow(self.config.window_name, canvas)
        return report

    def run(self) -> None:
        """Main loop; press 'q' or Esc in the window to quit."""
        self.initialize()
        self._running = True
        target_interval = 1.0 / self.config.target_fps

        logger.info("Mood stabilizer started. Press 'q' to quit.")

        try:
            while self._running:
                loop_start = time.time()

                report = self.step()
                if report is not None:
                    logger.debug(
                        f"tracking={report.tracking.value} "
                        f"window=[{report.window.min_sentiment:+.2f}, {report.window.max_sentiment:+.2f}] "
                        f"candidates={report.num_candidates} post={report.post.value}"
                    )

                if cv2.waitKey(1) & 0xFF in QUIT_KEYS:
                    logger.info("Quit requested via keyboard")
                    break

                elapsed = time.time() - loop_start
                if elapsed < target_interval:
                    time.sleep(target_interval - elapsed)

        except KeyboardInterrupt:
            logger.info("Interrupted by user")

        finally:
            self.stop()

    def request_stop(self) -> None:
        """Ask the main loop to exit after the current frame."""
        self._running = False

    def stop(self) -> None:
        """Stop the loop and release camera, tracker and window."""
        self._running = False

        if self._camera is not None:
            self._camera.release()
            self._camera = None

        if self._tracker is not None:
            self._tracker.close()
            self._tracker = None

        if self._window_open:
            cv2.destroyAllWindows()
            self._window_open = False

        frames = self.session.frame_count
        if frames > 0:
            elapsed = max(self.now_ms() / 1000.0, 1e-3)
            logger.info(f"Processed {frames} frames in {elapsed:.1f}s ({frames / elapsed:.1f} FPS)")

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
