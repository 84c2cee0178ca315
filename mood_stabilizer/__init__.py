"""
Mood Stabilizer Package

Webcam chat overlay whose message mood follows the viewer's smile or frown,
using MediaPipe face landmarks.
"""

__version__ = "0.1.0"

from mood_stabilizer.sentiment import SentimentWindow, window_for_expression
from mood_stabilizer.messages import Message, MessageStore, filter_messages, load_message_store
from mood_stabilizer.observation import FaceObservation
from mood_stabilizer.expression import ExpressionEstimator, FacePolicy
from mood_stabilizer.feed import ActiveFeed, FeedScheduler, PostOutcome
from mood_stabilizer.tracker import FaceTracker, ObservationSlot, TrackerState
from mood_stabilizer.session import FrameReport, MoodSession, TrackingStatus
from mood_stabilizer.config import StabilizerConfig, load_config, save_config

__all__ = [
    "SentimentWindow",
    "window_for_expression",
    "Message",
    "MessageStore",
    "filter_messages",
    "load_message_store",
    "FaceObservation",
    "ExpressionEstimator",
    "FacePolicy",
    "ActiveFeed",
    "FeedScheduler",
    "PostOutcome",
    "FaceTracker",
    "ObservationSlot",
    "TrackerState",
    "FrameReport",
    "MoodSession",
    "TrackingStatus",
    "StabilizerConfig",
    "load_config",
    "save_config",
]
