"""
Active feed and randomized post scheduler.

The scheduler is a plain deadline compared against the frame clock once per
frame. When the deadline has passed it posts one random candidate (if any)
and always draws a new deadline, so an empty candidate set never causes
busy posting attempts.
"""

import logging
from collections import deque
from enum import Enum
from typing import Iterator, List, Optional, Sequence

import numpy as np

from .messages import Message

logger = logging.getLogger(__name__)


DEFAULT_CAPACITY = 100
DEFAULT_MIN_INTERVAL_MS = 500.0
DEFAULT_MAX_INTERVAL_MS = 2500.0


class ActiveFeed:
    """Bounded, time-ordered sequence of posted messages.

    Appends go to the tail; once ``capacity`` is exceeded the oldest entry
    (index 0) is evicted.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._entries: deque = deque()

    def append(self, message: Message) -> None:
        self._entries.append(message)
        if len(self._entries) > self.capacity:
            self._entries.popleft()

    def newest_first(self) -> Iterator[Message]:
        """Iterate from the most recent entry to the oldest."""
        return reversed(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> Message:
        return self._entries[index]

    def to_list(self) -> List[Message]:
        return list(self._entries)


class SchedulerState(str, Enum):
    WAITING = "waiting"
    POSTING = "posting"


class PostOutcome(str, Enum):
    """Result of one scheduler tick."""

    WAITING = "waiting"              # deadline not reached
    POSTED = "posted"                # a message was appended
    NO_CANDIDATES = "no_candidates"  # deadline reached, nothing to post


class FeedScheduler:
    """随机间隔发帖调度器 (randomized post scheduler)

    Attributes:
        feed: Feed receiving posted messages.
        min_interval_ms: Lower bound of the post delay.
        max_interval_ms: Upper bound of the post delay (exclusive).
        deadline_ms: Absolute time after which the next post happens.
    """

    def __init__(
        self,
        feed: ActiveFeed,
        min_interval_ms: float = DEFAULT_MIN_INTERVAL_MS,
        max_interval_ms: float = DEFAULT_MAX_INTERVAL_MS,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            feed: Feed that receives posted messages
            min_interval_ms: Minimum delay between posts in ms
            max_interval_ms: Maximum delay between posts in ms
            rng: Random generator for delays and picks (seedable for tests)

        Raises:
            ValueError: If the interval bounds are negative or inverted
        """
        if min_interval_ms < 0 or max_interval_ms < 0:
            raise ValueError("Post intervals must be non-negative")
        if min_interval_ms > max_interval_ms:
            raise ValueError(
                f"min_interval_ms {min_interval_ms} exceeds "
                f"max_interval_ms {max_interval_ms}"
            )

        self.feed = feed
        self.min_interval_ms = float(min_interval_ms)
        self.max_interval_ms = float(max_interval_ms)
        self._rng = rng if rng is not None else np.random.default_rng()

        self.deadline_ms: float = 0.0
        self.state = SchedulerState.WAITING
        self.last_delay_ms: float = 0.0

    def next_delay(self) -> float:
        """Draw a post delay uniformly from [min_interval_ms, max_interval_ms)."""
        return float(self._rng.uniform(self.min_interval_ms, self.max_interval_ms))

    def reset_timer(self, now_ms: float) -> float:
        """
        Schedule the next post relative to ``now_ms``.

        Returns:
            The new deadline in ms
        """
        self.last_delay_ms = self.next_delay()
        self.deadline_ms = now_ms + self.last_delay_ms
        self.state = SchedulerState.WAITING
        return self.deadline_ms

    def pick(self, candidates: Sequence[Message]) -> Message:
        """Choose one candidate uniformly at random."""
        return candidates[int(self._rng.integers(len(candidates)))]

    def tick(self, now_ms: float, candidates: Sequence[Message]) -> PostOutcome:
        """
        Advance the scheduler for one frame.

        Args:
            now_ms: Current frame time in ms
            candidates: Messages currently allowed by the sentiment window

        Returns:
            PostOutcome describing what happened this frame
        """
        if now_ms <= self.deadline_ms:
            return PostOutcome.WAITING

        self.state = SchedulerState.POSTING

        if candidates:
            message = self.pick(candidates)
            self.feed.append(message)
            outcome = PostOutcome.POSTED
            logger.debug(f"Posted ({message.sentiment:+.2f}): {message.text}")
        else:
            outcome = PostOutcome.NO_CANDIDATES
            logger.debug("No candidate messages in window, skipping post")

        self.reset_timer(now_ms)
        return outcome
