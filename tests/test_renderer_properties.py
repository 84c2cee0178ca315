"""
Property-based tests for feed layout and overlay rendering.
"""

import numpy as np
import pytest
from hypothesis import given, settings
import hypothesis.strategies as st

from mood_stabilizer.messages import Message
from mood_stabilizer.renderer import (
    FeedLayout,
    FeedRenderer,
    PlacedMessage,
    comment_bar_geometry,
    cover_rect,
    fade_alpha,
    hue_to_bgr,
    layout_feed,
    sentiment_hue,
    wrap_text,
)


def feed_of(n, sentiment=0.0):
    """Newest-first list of n messages."""
    return [Message(f"message number {i}", sentiment) for i in range(n)][::-1]


class TestFadeOpacity:
    """
    **Feature: mood-stabilizer, Property 5: Linear Fade**

    With fade start at 700 and chat top at 300: opacity is 1.0 at 700,
    0.0 at 300 and 0.5 at 500.
    """

    def test_reference_points(self):
        assert fade_alpha(700, 700, 300) == pytest.approx(1.0)
        assert fade_alpha(300, 700, 300) == pytest.approx(0.0)
        assert fade_alpha(500, 700, 300) == pytest.approx(0.5)

    def test_clamped_outside_range(self):
        assert fade_alpha(900, 700, 300) == 1.0
        assert fade_alpha(100, 700, 300) == 0.0

    @settings(max_examples=100)
    @given(y=st.floats(min_value=-2000, max_value=2000, allow_nan=False))
    def test_alpha_always_valid(self, y):
        assert 0.0 <= fade_alpha(y, 700, 300) <= 1.0

    @settings(max_examples=100)
    @given(a=st.floats(min_value=300, max_value=700), b=st.floats(min_value=300, max_value=700))
    def test_alpha_monotonic_in_y(self, a, b):
        low, high = min(a, b), max(a, b)
        assert fade_alpha(low, 700, 300) <= fade_alpha(high, 700, 300) + 1e-12


class TestSentimentHue:
    """Sentiment maps linearly onto the red-to-green hue range."""

    def test_endpoints(self):
        assert sentiment_hue(-1.0) == pytest.approx(0.0)
        assert sentiment_hue(0.0) == pytest.approx(60.0)
        assert sentiment_hue(1.0) == pytest.approx(120.0)

    def test_red_and_green_channels(self):
        b, g, r = hue_to_bgr(sentiment_hue(-1.0))
        assert r > g and r > b
        b, g, r = hue_to_bgr(sentiment_hue(1.0))
        assert g > r and g > b


class TestFeedLayout:
    """Entries stack upward from the baseline and stop at the chat top."""

    def setup_method(self):
        self.layout = FeedLayout()

    def test_positions_step_by_box_height(self):
        placed = layout_feed(feed_of(3), 1000, self.layout)
        baseline = 1000 - 30 - 50 - 42
        assert [p.y for p in placed] == [baseline, baseline - 42, baseline - 84]

    @settings(max_examples=100)
    @given(height=st.integers(min_value=200, max_value=2000),
           count=st.integers(min_value=1, max_value=100))
    def test_iteration_stops_at_chat_top(self, height, count):
        placed = layout_feed(feed_of(count), height, self.layout)

        chat_top = height / 2.5
        baseline = self.layout.baseline(height)
        visible = 1
        while visible < count and baseline - visible * self.layout.box_total >= chat_top:
            visible += 1

        assert len(placed) == visible
        assert all(p.y >= chat_top for p in placed[1:])

    def test_full_buffer_not_iterated(self):
        placed = layout_feed(feed_of(100), 1000, self.layout)
        assert len(placed) == 12

    def test_newest_entry_is_opaque(self):
        placed = layout_feed(feed_of(5), 1000, self.layout)
        assert placed[0].alpha == 1.0
        assert placed[0].message.text == "message number 4"

    def test_empty_feed(self):
        assert layout_feed([], 1000, self.layout) == []

    def test_hue_follows_sentiment(self):
        placed = layout_feed([Message("yay", 1.0)], 800, self.layout)
        assert placed[0].hue == pytest.approx(120.0)


class TestCoverRect:
    """Background video covers the viewport, centred, aspect preserved."""

    def test_wide_video_in_tall_canvas(self):
        dx, dy, dw, dh = cover_rect(1280, 720, 720, 1280)
        assert dh == 1280
        assert dw == pytest.approx(1280 * 1280 / 720)
        assert dy == 0
        assert dx == pytest.approx((720 - dw) / 2)

    def test_tall_video_in_wide_canvas(self):
        dx, dy, dw, dh = cover_rect(480, 640, 1280, 720)
        assert dw == 1280
        assert dh == pytest.approx(1280 * 640 / 480)
        assert dx == 0
        assert dy < 0

    @settings(max_examples=100)
    @given(sw=st.integers(16, 2000), sh=st.integers(16, 2000),
           cw=st.integers(16, 2000), ch=st.integers(16, 2000))
    def test_always_covers(self, sw, sh, cw, ch):
        dx, dy, dw, dh = cover_rect(sw, sh, cw, ch)
        assert dw >= cw - 1e-6 and dh >= ch - 1e-6
        assert dw / dh == pytest.approx(sw / sh)


class TestCommentBar:
    """Input box takes two thirds of the width; buttons share the rest."""

    def test_geometry(self):
        layout = FeedLayout()
        (x, y, w, h), button_xs, size = comment_bar_geometry(1200, 800, layout)

        assert (x, y, h) == (50, 800 - 50 - 30, 50)
        assert w == pytest.approx(800 - 50)
        assert len(button_xs) == 3
        gap = (1200 - 800 - 150) / 4
        assert button_xs[0] == pytest.approx(800 + gap)
        assert button_xs[2] + size + gap == pytest.approx(1200)


class TestRendering:
    """Rendering produces a viewport-sized image without failing."""

    def test_render_before_first_frame(self):
        canvas = FeedRenderer().render(None, feed_of(3), (640, 480))
        assert canvas.shape == (480, 640, 3)

    @pytest.mark.parametrize("viewport", [(1280, 720), (720, 1280), (333, 517), (60, 40)])
    def test_render_sizes(self, viewport):
        frame = np.full((480, 640, 3), 80, dtype=np.uint8)
        canvas = FeedRenderer().render(frame, feed_of(20, sentiment=-0.5), viewport)
        assert canvas.shape == (viewport[1], viewport[0], 3)

    def test_feed_changes_pixels(self):
        frame = np.zeros((720, 1280, 3), dtype=np.uint8)
        renderer = FeedRenderer()
        empty = renderer.render(frame, [], (1280, 720))
        filled = renderer.render(frame, feed_of(3, sentiment=1.0), (1280, 720))
        assert not np.array_equal(empty, filled)

    def test_wrap_text_limits_lines(self):
        text = "word " * 200
        lines = wrap_text(text, 200, 0.55, max_lines=2)
        assert 1 <= len(lines) <= 2


class TestClippedEntry:
    """Entries partly above the canvas keep their text anchored to the box top."""

    def setup_method(self):
        self.renderer = FeedRenderer()

    def draw_at(self, y):
        canvas = np.zeros((100, 400, 3), dtype=np.uint8)
        placed = PlacedMessage(message=Message("hi", 1.0), y=y, alpha=1.0,
                               hue=sentiment_hue(1.0))
        self.renderer.draw_entry(canvas, placed)
        return canvas

    def test_text_above_canvas_stays_hidden(self):
        # Box spans rows -30..10; the single text line sits above row 0
        canvas = self.draw_at(-30)
        assert canvas[:10].max() == 0

    def test_unclipped_entry_draws_text(self):
        canvas = self.draw_at(0)
        assert canvas[:40].max() > 0
