"""Sentiment window derived from the expression signal.

A smile (negative expression index) shifts the window toward positive
message sentiment, a frown toward negative.
"""

from dataclasses import dataclass


DEFAULT_HALF_WIDTH = 0.1


@dataclass(frozen=True)
class SentimentWindow:
    """Accepted message sentiment range ``[min_sentiment, max_sentiment]``."""

    min_sentiment: float = -1.0
    max_sentiment: float = 1.0

    def __post_init__(self) -> None:
        if self.min_sentiment > self.max_sentiment:
            raise ValueError(
                f"min_sentiment {self.min_sentiment} exceeds "
                f"max_sentiment {self.max_sentiment}"
            )

    @property
    def width(self) -> float:
        return self.max_sentiment - self.min_sentiment

    @property
    def center(self) -> float:
        return (self.min_sentiment + self.max_sentiment) / 2

    def contains(self, sentiment: float) -> bool:
        """Inclusive membership test."""
        return self.min_sentiment <= sentiment <= self.max_sentiment

    @classmethod
    def full_range(cls) -> "SentimentWindow":
        """Window accepting every message; used before the first face is seen."""
        return cls(-1.0, 1.0)


def window_for_expression(
    expression: float,
    half_width: float = DEFAULT_HALF_WIDTH,
) -> SentimentWindow:
    """
    Map an expression index to a sentiment window.

    The window is centred on ``-expression``:
    ``min = -expression - half_width`` and ``max = -expression + half_width``.

    Args:
        expression: Expression index (negative = smile, positive = frown)
        half_width: Half of the window width (0.1 gives a 0.2 wide band)

    Returns:
        SentimentWindow for the expression
    """
    if half_width < 0:
        raise ValueError(f"half_width must be >= 0, got {half_width}")
    return SentimentWindow(
        min_sentiment=-expression - half_width,
        max_sentiment=-expression + half_width,
    )
