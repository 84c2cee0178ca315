"""
Expression estimation from mouth landmarks.

Compares the midpoint of the two mouth corners with the midpoint of the
upper and lower lip centers. Corners above the lip center read as a smile
(negative index), corners below it as a frown (positive index).
"""

import logging
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from .observation import FaceObservation

logger = logging.getLogger(__name__)


# MediaPipe Face Mesh landmark indices (inner lip contour)
LEFT_MOUTH_CORNER = 78
RIGHT_MOUTH_CORNER = 308
UPPER_LIP_CENTER = 13
LOWER_LIP_CENTER = 14

MOUTH_LANDMARKS = (LEFT_MOUTH_CORNER, RIGHT_MOUTH_CORNER, UPPER_LIP_CENTER, LOWER_LIP_CENTER)

# Negative (smile) offsets use the smaller divisor
SMILE_DIVISOR = 5.0
FROWN_DIVISOR = 10.0

EXPRESSION_LIMIT = 0.9


class FacePolicy(str, Enum):
    """How to reduce several tracked faces to one expression."""

    FIRST = "first"
    LAST = "last"
    AVERAGE = "average"


def raw_expression_index(observation: FaceObservation) -> float:
    """
    Vertical offset between lip-center midpoint and mouth-corner midpoint.

    Args:
        observation: Landmarks of one face

    Returns:
        ``vert_mid.y - horz_mid.y`` in pixels

    Raises:
        ValueError: If the observation lacks the mouth landmarks
    """
    required = max(MOUTH_LANDMARKS) + 1
    if observation.num_landmarks < required:
        raise ValueError(
            f"Expected at least {required} landmarks, got {observation.num_landmarks}"
        )

    lm = observation.landmarks
    horz_mid = (lm[LEFT_MOUTH_CORNER] + lm[RIGHT_MOUTH_CORNER]) / 2
    vert_mid = (lm[UPPER_LIP_CENTER] + lm[LOWER_LIP_CENTER]) / 2
    return float(vert_mid[1] - horz_mid[1])


def normalize_expression_index(raw: float, clamp: bool = True) -> float:
    """
    Scale a raw offset to the expression range.

    Negative offsets are divided by 5, non-negative by 10. With ``clamp``
    the result is limited to [-0.9, 0.9]; without it the scaled value is
    passed through unchanged.
    """
    if raw < 0:
        value = raw / SMILE_DIVISOR
    else:
        value = raw / FROWN_DIVISOR

    if clamp:
        value = float(np.clip(value, -EXPRESSION_LIMIT, EXPRESSION_LIMIT))
    return value


class ExpressionEstimator:
    """Smile/frown estimator producing one expression index per frame.

    Attributes:
        clamp: Whether to limit the index to [-0.9, 0.9].
        policy: Reduction applied when more than one face is observed.
    """

    def __init__(self, clamp: bool = True, policy: FacePolicy = FacePolicy.FIRST):
        self.clamp = clamp
        self.policy = FacePolicy(policy)

    def estimate(self, observation: FaceObservation) -> float:
        """Expression index of a single face."""
        raw = raw_expression_index(observation)
        value = normalize_expression_index(raw, clamp=self.clamp)
        logger.debug(f"Expression index = {value:.3f} (raw {raw:.2f})")
        return value

    def estimate_faces(self, faces: Sequence[FaceObservation]) -> Optional[float]:
        """
        Expression index for the current frame's faces.

        Args:
            faces: Observations for zero or more faces, in tracker order

        Returns:
            Expression index, or None if no face was observed
        """
        if not faces:
            return None

        if self.policy == FacePolicy.FIRST:
            return self.estimate(faces[0])
        if self.policy == FacePolicy.LAST:
            return self.estimate(faces[-1])
        return float(np.mean([self.estimate(face) for face in faces]))
