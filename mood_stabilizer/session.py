"""
Per-run session state and the frame update pipeline.

One MoodSession holds everything the feed needs between frames: the
sentiment window, the active feed, the post deadline, the observation slot
and the tracking lifecycle. ``update`` runs one frame of

    faces -> expression -> window -> filter -> scheduler
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from .expression import ExpressionEstimator, FacePolicy
from .feed import (
    ActiveFeed,
    DEFAULT_CAPACITY,
    DEFAULT_MAX_INTERVAL_MS,
    DEFAULT_MIN_INTERVAL_MS,
    FeedScheduler,
    PostOutcome,
)
from .messages import Message, filter_messages
from .sentiment import DEFAULT_HALF_WIDTH, SentimentWindow, window_for_expression
from .tracker import ObservationSlot

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class TrackingStatus(str, Enum):
    """Face tracking situation for one frame."""

    UNAVAILABLE = "unavailable"  # tracker not ready yet
    NO_FACE = "no_face"          # ready, no face in the latest result
    TRACKING = "tracking"        # window updated from a face this frame


@dataclass
class FrameReport:
    """What happened during one ``MoodSession.update`` call."""

    tracking: TrackingStatus
    expression: Optional[float]
    window: SentimentWindow
    num_candidates: int
    post: PostOutcome


class MoodSession:
    """Session state for the mood-driven chat feed.

    Usage:
        session = MoodSession(store, now_ms=0.0)
        session.mark_ready()                 # once the tracker is up
        report = session.update(now_ms)      # every frame
    """

    def __init__(
        self,
        store: Optional[Sequence[Message]],
        now_ms: float = 0.0,
        slot: Optional[ObservationSlot] = None,
        estimator: Optional[ExpressionEstimator] = None,
        capacity: int = DEFAULT_CAPACITY,
        min_interval_ms: float = DEFAULT_MIN_INTERVAL_MS,
        max_interval_ms: float = DEFAULT_MAX_INTERVAL_MS,
        half_width: float = DEFAULT_HALF_WIDTH,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Create a session and schedule the first post.

        Args:
            store: Messages to choose from, or None if none were loaded
            now_ms: Session start time in ms
            slot: Slot the tracker publishes into (a new one if None)
            estimator: Expression estimator (clamped, first-face if None)
            capacity: Maximum number of entries in the active feed
            min_interval_ms: Minimum delay between posts
            max_interval_ms: Maximum delay between posts
            half_width: Half width of the sentiment window
            rng: Random generator shared by the scheduler
        """
        self.store = store
        self.slot = slot if slot is not None else ObservationSlot()
        self.estimator = estimator or ExpressionEstimator(clamp=True, policy=FacePolicy.FIRST)
        self.half_width = half_width

        self.window = SentimentWindow.full_range()
        self.expression: Optional[float] = None
        self.candidates = filter_messages(self.store, self.window)

        self.feed = ActiveFeed(capacity=capacity)
        self.scheduler = FeedScheduler(
            self.feed,
            min_interval_ms=min_interval_ms,
            max_interval_ms=max_interval_ms,
            rng=rng,
        )
        self.scheduler.reset_timer(now_ms)

        self._state = SessionState.UNINITIALIZED
        self._frame_count = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == SessionState.READY

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def mark_ready(self) -> None:
        """Tracker is up; face results are consumed from now on."""
        if self._state != SessionState.READY:
            self._state = SessionState.READY
            logger.info("Session ready, face tracking started")

    def _update_window(self) -> TrackingStatus:
        if not self.is_ready:
            return TrackingStatus.UNAVAILABLE

        faces = self.slot.latest()
        expression = self.estimator.estimate_faces(faces or [])
        if expression is None:
            return TrackingStatus.NO_FACE

        self.expression = expression
        self.window = window_for_expression(expression, self.half_width)
        return TrackingStatus.TRACKING

    def update(self, now_ms: float) -> FrameReport:
        """
        Run one frame of the pipeline.

        The window keeps its previous value when no face is available.
        Candidates are refiltered every frame regardless.

        Args:
            now_ms: Current frame time in ms

        Returns:
            FrameReport for this frame
        """
        tracking = self._update_window()
        self.candidates = filter_messages(self.store, self.window)
        post = self.scheduler.tick(now_ms, self.candidates)
        self._frame_count += 1

        return FrameReport(
            tracking=tracking,
            expression=self.expression if tracking == TrackingStatus.TRACKING else None,
            window=self.window,
            num_candidates=len(self.candidates),
            post=post,
        )
