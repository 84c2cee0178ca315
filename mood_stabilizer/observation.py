"""
FaceObservation dataclass for landmark positions of one tracked face.

Landmarks follow the MediaPipe Face Mesh indexing scheme and are stored
in image pixel coordinates, with y increasing downward.
"""

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np


@dataclass
class FaceObservation:
    """面部关键点观测 (one face, one frame)

    Attributes:
        landmarks: Array of shape (N, 2) with (x, y) pixel positions.
            MediaPipe Face Landmarker produces N = 478.
        timestamp_ms: Frame timestamp in milliseconds.
    """

    landmarks: np.ndarray = field(repr=False)
    timestamp_ms: float = 0.0

    def __post_init__(self) -> None:
        landmarks = np.asarray(self.landmarks, dtype=np.float64)
        if landmarks.ndim != 2 or landmarks.shape[1] < 2:
            raise ValueError(
                f"Expected landmarks of shape (N, 2), got {landmarks.shape}"
            )
        self.landmarks = landmarks[:, :2]

    @property
    def num_landmarks(self) -> int:
        return int(self.landmarks.shape[0])

    def point(self, index: int) -> np.ndarray:
        """Return the (x, y) position of one landmark."""
        return self.landmarks[index]

    @classmethod
    def from_normalized(
        cls,
        points: Sequence,
        width: int,
        height: int,
        timestamp_ms: float = 0.0,
    ) -> "FaceObservation":
        """
        Build an observation from MediaPipe normalized landmarks.

        Args:
            points: Sequence of objects with ``x`` and ``y`` in [0, 1]
            width: Image width in pixels
            height: Image height in pixels
            timestamp_ms: Frame timestamp in milliseconds

        Returns:
            FaceObservation in pixel coordinates
        """
        landmarks = np.array(
            [[lm.x * width, lm.y * height] for lm in points],
            dtype=np.float64,
        ).reshape(-1, 2)
        return cls(landmarks=landmarks, timestamp_ms=timestamp_ms)
