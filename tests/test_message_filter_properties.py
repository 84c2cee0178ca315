"""
Property-based tests for the message store and sentiment filter.
"""

import json

import pytest
from hypothesis import given, settings
import hypothesis.strategies as st

from mood_stabilizer.messages import (
    DEFAULT_MESSAGES_PATH,
    Message,
    MessageStore,
    filter_messages,
    load_message_store,
)
from mood_stabilizer.sentiment import SentimentWindow


sentiments = st.floats(min_value=-1.0, max_value=1.0, allow_nan=False, allow_infinity=False)


def store_strategy():
    """Generate a store of 0-30 messages with random sentiments."""
    return st.lists(sentiments, max_size=30).map(
        lambda values: MessageStore([Message(f"msg {i}", s) for i, s in enumerate(values)])
    )


def window_strategy():
    return st.tuples(sentiments, sentiments).map(lambda b: SentimentWindow(min(b), max(b)))


class TestFilterExample:
    """
    **Feature: mood-stabilizer, Property 3: Inclusive Filtering**

    Store ``[-1, -0.5, 0, 0.5, 1]`` with window ``[-0.05, 0.15]`` yields
    only the ``0`` message; messages exactly on a bound are included.
    """

    def setup_method(self):
        self.store = MessageStore([
            Message("awful", -1.0),
            Message("bad", -0.5),
            Message("meh", 0.0),
            Message("good", 0.5),
            Message("great", 1.0),
        ])

    def test_reference_window(self):
        result = filter_messages(self.store, SentimentWindow(-0.05, 0.15))
        assert [m.sentiment for m in result] == [0.0]

    def test_lower_bound_inclusive(self):
        result = filter_messages(self.store, SentimentWindow(0.5, 0.7))
        assert [m.text for m in result] == ["good"]

    def test_upper_bound_inclusive(self):
        result = filter_messages(self.store, SentimentWindow(-0.7, -0.5))
        assert [m.text for m in result] == ["bad"]

    def test_missing_store_gives_empty_result(self):
        assert filter_messages(None, SentimentWindow.full_range()) == []


class TestFilterProperties:
    """The filter returns exactly the in-window messages, in store order."""

    @settings(max_examples=100)
    @given(store=store_strategy(), window=window_strategy())
    def test_exact_membership(self, store, window):
        result = filter_messages(store, window)

        assert all(window.min_sentiment <= m.sentiment <= window.max_sentiment for m in result)
        excluded = [m for m in store if m not in result]
        assert all(not window.contains(m.sentiment) for m in excluded)

    @settings(max_examples=100)
    @given(store=store_strategy(), window=window_strategy())
    def test_store_order_preserved(self, store, window):
        result = filter_messages(store, window)
        positions = [store.messages.index(m) for m in result]
        assert positions == sorted(positions)

    @settings(max_examples=50)
    @given(store=store_strategy())
    def test_full_range_returns_everything(self, store):
        assert filter_messages(store, SentimentWindow.full_range()) == list(store)


class TestMessageRecords:
    """Message validation and store loading."""

    def test_sentiment_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            Message("too happy", 1.5)

    def test_empty_text_rejected(self):
        with pytest.raises(ValueError):
            Message("  ", 0.0)

    def test_messages_are_immutable(self):
        message = Message("hi", 0.0)
        with pytest.raises(AttributeError):
            message.sentiment = 0.5

    def test_from_dict_missing_key(self):
        with pytest.raises(ValueError):
            Message.from_dict({"text": "no score"})

    def test_load_json_list(self, tmp_path):
        path = tmp_path / "messages.json"
        path.write_text(json.dumps([{"text": "a", "sentiment": -0.2}, {"text": "b", "sentiment": 0.4}]))

        store = MessageStore.load(path)
        assert [m.text for m in store] == ["a", "b"]
        assert store[1].sentiment == 0.4

    def test_load_yaml_mapping(self, tmp_path):
        path = tmp_path / "messages.yaml"
        path.write_text("messages:\n  - text: hello\n    sentiment: 0.1\n")

        store = MessageStore.load(path)
        assert len(store) == 1
        assert store[0] == Message("hello", 0.1)

    def test_load_invalid_record(self, tmp_path):
        path = tmp_path / "messages.json"
        path.write_text(json.dumps([{"text": "x", "sentiment": 3}]))
        with pytest.raises(ValueError):
            MessageStore.load(path)

    def test_load_not_a_list(self, tmp_path):
        path = tmp_path / "messages.json"
        path.write_text(json.dumps({"text": "x"}))
        with pytest.raises(ValueError):
            MessageStore.load(path)

    def test_missing_file_degrades_to_none(self, tmp_path):
        assert load_message_store(tmp_path / "nope.json") is None

    def test_bundled_messages_load(self):
        store = load_message_store()
        assert store is not None
        assert len(store) > 0
        assert all(-1.0 <= m.sentiment <= 1.0 for m in store)
        assert DEFAULT_MESSAGES_PATH.exists()

    def test_unreadable_path_degrades_to_none(self, tmp_path):
        folder = tmp_path / "messages.json"
        folder.mkdir()
        assert load_message_store(folder) is None

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "messages.yaml"
        path.write_text("messages: [unclosed\n")
        with pytest.raises(ValueError):
            MessageStore.load(path)
