"""
Message store and sentiment filter for the simulated chat feed.

Messages are hand-authored records tagged with a sentiment score in
[-1, 1]. They are loaded once from a JSON or YAML file and never mutated.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .sentiment import SentimentWindow

logger = logging.getLogger(__name__)

# Bundled message set used when no file is configured
DEFAULT_MESSAGES_PATH = Path(__file__).parent / "data" / "messages.json"

MIN_SENTIMENT = -1.0
MAX_SENTIMENT = 1.0


@dataclass(frozen=True)
class Message:
    """A single pre-authored chat message.

    Attributes:
        text: Message body shown in the feed.
        sentiment: Authored emotional polarity in [-1, 1].
    """

    text: str
    sentiment: float

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValueError("Message text must be a non-empty string")
        if not (MIN_SENTIMENT <= self.sentiment <= MAX_SENTIMENT):
            raise ValueError(
                f"Sentiment {self.sentiment} is out of range "
                f"[{MIN_SENTIMENT}, {MAX_SENTIMENT}] for message '{self.text}'"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        """
        Create a Message from a mapping with ``text`` and ``sentiment`` keys.

        Raises:
            ValueError: If a key is missing or the values are invalid.
        """
        try:
            text = data["text"]
            sentiment = float(data["sentiment"])
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid message record {data!r}: {e}")
        return cls(text=text, sentiment=sentiment)


class MessageStore:
    """Ordered, read-only collection of messages."""

    def __init__(self, messages: Sequence[Message]):
        self._messages: tuple = tuple(messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self._messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    @property
    def messages(self) -> tuple:
        return self._messages

    @classmethod
    def from_records(cls, records: Sequence[Dict[str, Any]]) -> "MessageStore":
        return cls([Message.from_dict(record) for record in records])

    @classmethod
    def load(cls, path: Union[str, Path]) -> "MessageStore":
        """
        Load messages from a JSON or YAML file.

        The file holds either a list of ``{text, sentiment}`` records or a
        mapping with a ``messages`` key containing that list.

        Args:
            path: Path to the message file

        Returns:
            MessageStore in file order

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file cannot be parsed or a record is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Message file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix in ('.yaml', '.yml'):
                try:
                    import yaml
                except ImportError:
                    raise ImportError(
                        "PyYAML not installed. Install with: pip install pyyaml"
                    )
                try:
                    data = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ValueError(f"Failed to parse message file {path}: {e}")
            else:
                try:
                    data = json.load(f)
                except json.JSONDecodeError as e:
                    raise ValueError(f"Failed to parse message file {path}: {e}")

        if isinstance(data, dict):
            data = data.get("messages")
        if not isinstance(data, list):
            raise ValueError(f"Message file {path} must contain a list of messages")

        store = cls.from_records(data)
        logger.info(f"Loaded {len(store)} messages from {path}")
        return store


def load_message_store(path: Optional[Union[str, Path]] = None) -> Optional[MessageStore]:
    """
    Load the message store, degrading to ``None`` when the file is absent.

    A missing store is not fatal: the filter then yields no candidates and
    nothing is ever posted.

    Args:
        path: Message file, or None for the bundled default set

    Returns:
        MessageStore, or None if the file is missing or unreadable
    """
    path = Path(path) if path is not None else DEFAULT_MESSAGES_PATH
    try:
        return MessageStore.load(path)
    except FileNotFoundError:
        logger.warning(f"Message file {path} not found, feed will stay empty")
        return None
    except OSError as e:
        logger.warning(f"Cannot read message file {path} ({e}), feed will stay empty")
        return None


def filter_messages(
    store: Optional[Sequence[Message]],
    window: SentimentWindow,
) -> List[Message]:
    """
    Select the messages whose sentiment lies inside the window.

    Bounds are inclusive and store order is preserved.

    Args:
        store: Message store, or None if none was loaded
        window: Current sentiment acceptance band

    Returns:
        List of matching messages (empty if store is None)
    """
    if store is None:
        return []
    return [msg for msg in store if window.contains(msg.sentiment)]
