"""
FaceTracker streaming face landmarks from MediaPipe Face Landmarker.

The landmarker runs in live-stream mode: frames are submitted without
blocking and results arrive on a MediaPipe worker thread. Each result list
replaces the contents of an ObservationSlot wholesale; the render loop
reads the slot once per frame.

Uses the MediaPipe Tasks API (FaceLandmarker), mediapipe >= 0.10.
"""

import logging
import os
import threading
import urllib.request
from enum import Enum
from typing import Callable, List, Optional

import cv2
import numpy as np

try:
    import mediapipe as mp
    from mediapipe.tasks import python
    from mediapipe.tasks.python import vision

    MEDIAPIPE_AVAILABLE = True
except ImportError:
    MEDIAPIPE_AVAILABLE = False

from .observation import FaceObservation

logger = logging.getLogger(__name__)


# Model download URL
MODEL_URL = "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/1/face_landmarker.task"
DEFAULT_MODEL_PATH = "face_landmarker.task"


class TrackerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


class ObservationSlot:
    """Latest-only holder for tracker results, shared across threads.

    ``publish`` swaps in a new result list under a lock; ``latest`` returns
    whatever was published last. Nothing is queued: an unread result is
    simply replaced by the next one.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._faces: Optional[List[FaceObservation]] = None
        self._version = 0

    def publish(self, faces: List[FaceObservation]) -> None:
        faces = list(faces)
        with self._lock:
            self._faces = faces
            self._version += 1

    def latest(self) -> Optional[List[FaceObservation]]:
        """
        Most recently published faces.

        Returns:
            List of observations (possibly empty), or None if nothing
            has been published yet
        """
        with self._lock:
            return self._faces

    @property
    def version(self) -> int:
        """Number of results published so far."""
        with self._lock:
            return self._version

    def clear(self) -> None:
        with self._lock:
            self._faces = None


class FaceTracker:
    """MediaPipe 人脸关键点跟踪器 (live-stream face landmark tracker)

    Lifecycle: UNINITIALIZED -> READY (after ``start``) -> CLOSED.
    Frames may only be submitted while READY.
    """

    def __init__(
        self,
        slot: ObservationSlot,
        max_faces: int = 1,
        refine_landmarks: bool = True,
        mirror_input: bool = False,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        model_path: Optional[str] = None,
        on_ready: Optional[Callable[[], None]] = None,
    ):
        """
        Configure the tracker. The model is not loaded until ``start``.

        Args:
            slot: Slot receiving each result list
            max_faces: Maximum number of faces to track
            refine_landmarks: Refined iris/lip landmarks; always on in the Tasks API, False only warns
            mirror_input: Flip frames horizontally before detection
            min_detection_confidence: Minimum confidence for face detection [0, 1]
            min_tracking_confidence: Minimum confidence for landmark tracking [0, 1]
            model_path: Path to face_landmarker.task. If None, will download.
            on_ready: Called once the landmarker has been created
        """
        if max_faces < 1:
            raise ValueError(f"max_faces must be >= 1, got {max_faces}")

        self.slot = slot
        self.max_faces = max_faces
        self.refine_landmarks = refine_landmarks
        self.mirror_input = mirror_input
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self._model_path = model_path
        self._on_ready = on_ready

        self._detector = None
        self._state = TrackerState.UNINITIALIZED
        self._last_timestamp_ms = -1

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == TrackerState.READY

    def _get_model_path(self) -> str:
        """Get or download the face landmarker model."""
        if self._model_path is not None:
            if not os.path.exists(self._model_path):
                raise FileNotFoundError(f"Model not found: {self._model_path}")
            return self._model_path

        if os.path.exists(DEFAULT_MODEL_PATH):
            return DEFAULT_MODEL_PATH

        package_model_path = os.path.join(os.path.dirname(__file__), DEFAULT_MODEL_PATH)
        if os.path.exists(package_model_path):
            return package_model_path

        logger.info(f"Downloading face landmarker model to {DEFAULT_MODEL_PATH}...")
        urllib.request.urlretrieve(MODEL_URL, DEFAULT_MODEL_PATH)
        logger.info("Model downloaded successfully")
        return DEFAULT_MODEL_PATH

    def start(self) -> None:
        """
        Create the landmarker and move to READY.

        Raises:
            ImportError: If mediapipe is not installed
            RuntimeError: If the tracker was already closed
        """
        if self._state == TrackerState.READY:
            return
        if self._state == TrackerState.CLOSED:
            raise RuntimeError("Tracker has been closed")
        if not MEDIAPIPE_AVAILABLE:
            raise ImportError(
                "MediaPipe is not installed. Install with: pip install mediapipe"
            )

        base_options = python.BaseOptions(model_asset_path=self._get_model_path())
        options = vision.FaceLandmarkerOptions(
            base_options=base_options,
            running_mode=vision.RunningMode.LIVE_STREAM,
            num_faces=self.max_faces,
            min_face_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
            result_callback=self.handle_result,
        )
        if not self.refine_landmarks:
            logger.warning(
                "refine_landmarks=False has no effect, FaceLandmarker always "
                "returns the refined 478-point mesh"
            )

        self._detector = vision.FaceLandmarker.create_from_options(options)
        self._state = TrackerState.READY
        logger.info("FaceLandmarker model ready")

        if self._on_ready is not None:
            self._on_ready()

    def submit(self, frame: np.ndarray, timestamp_ms: int) -> bool:
        """
        Hand a BGR frame to the landmarker without waiting for the result.

        Args:
            frame: BGR video frame (H, W, 3)
            timestamp_ms: Frame timestamp; must increase between calls

        Returns:
            True if the frame was submitted, False if it was skipped

        Raises:
            RuntimeError: If the tracker is not READY
        """
        if self._state != TrackerState.READY:
            raise RuntimeError(f"Cannot submit frames while tracker is {self._state.value}")

        if frame is None or frame.size == 0:
            return False

        timestamp_ms = int(timestamp_ms)
        if timestamp_ms <= self._last_timestamp_ms:
            return False
        self._last_timestamp_ms = timestamp_ms

        if self.mirror_input:
            frame = cv2.flip(frame, 1)

        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)
        self._detector.detect_async(mp_image, timestamp_ms)
        return True

    def handle_result(self, result, output_image, timestamp_ms: int) -> None:
        """
        Result callback: convert landmarks to pixel space and publish them.

        Runs on the MediaPipe worker thread.
        """
        width, height = output_image.width, output_image.height
        faces = [
            FaceObservation.from_normalized(face_landmarks, width, height, timestamp_ms)
            for face_landmarks in (result.face_landmarks or [])
        ]
        self.slot.publish(faces)

    def close(self) -> None:
        """Release MediaPipe resources."""
        if self._detector is not None:
            self._detector.close()
            self._detector = None
        self._state = TrackerState.CLOSED

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
