"""
Feed overlay rendering with OpenCV.

Draws the camera frame "cover" style into the viewport, then stacks the
active feed upward from a baseline above the comment bar. Entries fade out
between ``fade_start`` (70% of viewport height) and ``chat_top``
(viewport height / 2.5); each entry's outline is colored by its sentiment
on a red (-1) to green (+1) hue scale.

Layout math is kept in plain functions so it can be checked without
drawing anything.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import cv2
import numpy as np

from .messages import Message


FONT = cv2.FONT_HERSHEY_SIMPLEX
WHITE = (255, 255, 255)

# HSB saturation/brightness of the outline stroke, in percent
OUTLINE_SATURATION = 90
OUTLINE_BRIGHTNESS = 90

HUE_NEGATIVE = 0.0    # red
HUE_POSITIVE = 120.0  # green


@dataclass
class FeedLayout:
    """Pixel layout of the overlay."""

    padding_x: int = 50
    padding_top: int = 50
    padding_bottom: int = 30
    input_height: int = 50
    box_height: int = 40
    box_margin: int = 2

    chat_width_ratio: float = 0.85
    chat_top_divisor: float = 2.5
    fade_start_ratio: float = 0.7

    font_scale: float = 0.55
    header_font_scale: float = 1.0
    outline_thickness: int = 2

    @property
    def box_total(self) -> int:
        """Height of one entry including the gap below it."""
        return self.box_height + self.box_margin

    def baseline(self, height: float) -> float:
        """Top of the most recent entry's box."""
        return height - self.padding_bottom - self.input_height - self.box_total

    def chat_top(self, height: float) -> float:
        return height / self.chat_top_divisor

    def fade_start(self, height: float) -> float:
        return height * self.fade_start_ratio

    def text_width(self, width: float) -> float:
        """Maximum wrapped text width inside the chat box."""
        return width * self.chat_width_ratio - self.padding_x * 2


@dataclass
class PlacedMessage:
    """A feed entry positioned for drawing."""

    message: Message
    y: float
    alpha: float
    hue: float


def map_range(value: float, in_min: float, in_max: float,
              out_min: float, out_max: float) -> float:
    """Linearly re-map ``value`` from one range to another (unclamped)."""
    return out_min + (value - in_min) * (out_max - out_min) / (in_max - in_min)


def fade_alpha(y: float, fade_start: float, chat_top: float) -> float:
    """
    Opacity of an entry whose box top is at ``y``.

    1.0 at or below ``fade_start``, falling linearly to 0.0 at ``chat_top``,
    clamped to [0, 1].
    """
    alpha = 1.0
    if y < fade_start:
        alpha = map_range(y, fade_start, chat_top, 1.0, 0.0)
    return float(np.clip(alpha, 0.0, 1.0))


def sentiment_hue(sentiment: float) -> float:
    """Hue in degrees for a sentiment: -1 -> 0 (red), +1 -> 120 (green)."""
    return map_range(sentiment, -1.0, 1.0, HUE_NEGATIVE, HUE_POSITIVE)


def hue_to_bgr(
    hue: float,
    saturation: float = OUTLINE_SATURATION,
    brightness: float = OUTLINE_BRIGHTNESS,
) -> Tuple[int, int, int]:
    """
    Convert an HSB color (hue in degrees, S/B in percent) to a BGR tuple.

    OpenCV stores 8-bit hue as degrees / 2.
    """
    hsv = np.array(
        [[[
            np.clip(hue, 0.0, 359.0) / 2.0,
            np.clip(saturation, 0.0, 100.0) * 2.55,
            np.clip(brightness, 0.0, 100.0) * 2.55,
        ]]],
        dtype=np.uint8,
    )
    b, g, r = cv2.cvtColor(hsv, cv2.COLOR_HSV2BGR)[0, 0]
    return int(b), int(g), int(r)


def layout_feed(
    messages_newest_first: Iterable[Message],
    height: float,
    layout: FeedLayout,
) -> List[PlacedMessage]:
    """
    Position feed entries from the newest (bottom) upward.

    Entry ``i`` sits at ``baseline - i * box_total``. Iteration stops as
    soon as the next slot would be above ``chat_top``, so older entries
    are never visited.

    Args:
        messages_newest_first: Feed entries, most recent first
        height: Current viewport height
        layout: Overlay layout

    Returns:
        Entries to draw, most recent first
    """
    chat_top = layout.chat_top(height)
    fade_start = layout.fade_start(height)

    placed = []
    y = layout.baseline(height)
    for message in messages_newest_first:
        placed.append(PlacedMessage(
            message=message,
            y=y,
            alpha=fade_alpha(y, fade_start, chat_top),
            hue=sentiment_hue(message.sentiment),
        ))
        y -= layout.box_total
        if y < chat_top:
            break
    return placed


def cover_rect(src_w: int, src_h: int, dst_w: int, dst_h: int) -> Tuple[float, float, float, float]:
    """
    Placement that scales a source image to cover the destination.

    Aspect ratio is preserved and the image is centred; the overflowing
    dimension is cropped equally on both sides.

    Returns:
        (dx, dy, dw, dh): offset and size of the scaled source
    """
    canvas_aspect = dst_w / dst_h
    video_aspect = src_w / src_h

    if video_aspect > canvas_aspect:
        # Wider than the canvas
        dh = float(dst_h)
        dw = dh * video_aspect
        dx, dy = (dst_w - dw) / 2, 0.0
    else:
        # Taller than the canvas
        dw = float(dst_w)
        dh = dw / video_aspect
        dx, dy = 0.0, (dst_h - dh) / 2
    return dx, dy, dw, dh


def comment_bar_geometry(width: int, height: int, layout: FeedLayout):
    """
    Positions of the comment input box and its three buttons.

    The input box spans two thirds of the width; the buttons are square,
    ``input_height`` wide, evenly spaced in the remaining third.

    Returns:
        ((x, y, w, h) of the input box, [x of each button], button size)
    """
    box_y = height - layout.input_height - layout.padding_bottom
    input_x = layout.padding_x
    input_w = width * (2 / 3) - layout.padding_x

    button_size = layout.input_height
    area_x = input_x + input_w
    gap = (width - area_x - 3 * button_size) / 4

    button_xs = []
    x = area_x + gap
    for _ in range(3):
        button_xs.append(x)
        x += button_size + gap

    return (input_x, box_y, input_w, layout.input_height), button_xs, button_size


def wrap_text(text: str, max_width: float, font_scale: float,
              thickness: int = 1, max_lines: int = 2) -> List[str]:
    """Greedy word wrap measured with cv2.getTextSize."""
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        (w, _), _ = cv2.getTextSize(candidate, FONT, font_scale, thickness)
        if w <= max_width or not current:
            current = candidate
        else:
            lines.append(current)
            current = word
            if len(lines) == max_lines:
                break
    if current and len(lines) < max_lines:
        lines.append(current)
    return lines


class FeedRenderer:
    """Draws camera background, header, feed and comment bar."""

    def __init__(self, layout: Optional[FeedLayout] = None, username: str = "Username"):
        self.layout = layout or FeedLayout()
        self.username = username

    def render(
        self,
        frame: Optional[np.ndarray],
        messages_newest_first: Iterable[Message],
        viewport: Tuple[int, int],
    ) -> np.ndarray:
        """
        Compose one output image.

        Args:
            frame: Latest BGR camera frame, or None before the first frame
            messages_newest_first: Active feed, most recent first
            viewport: Current (width, height) of the output window

        Returns:
            BGR image of size viewport
        """
        width, height = viewport
        canvas = self.draw_background(frame, width, height)
        self.draw_header(canvas)
        for placed in layout_feed(messages_newest_first, height, self.layout):
            self.draw_entry(canvas, placed)
        self.draw_comment_bar(canvas)
        return canvas

    def draw_background(self, frame: Optional[np.ndarray], width: int, height: int) -> np.ndarray:
        canvas = np.zeros((height, width, 3), dtype=np.uint8)
        if frame is None or frame.size == 0:
            return canvas

        src_h, src_w = frame.shape[:2]
        dx, dy, dw, dh = cover_rect(src_w, src_h, width, height)
        scaled = cv2.resize(frame, (max(1, int(round(dw))), max(1, int(round(dh)))))

        x0 = max(0, int(round(-dx)))
        y0 = max(0, int(round(-dy)))
        crop = scaled[y0:y0 + height, x0:x0 + width]
        canvas[:crop.shape[0], :crop.shape[1]] = crop
        return canvas

    def draw_header(self, canvas: np.ndarray) -> None:
        (_, text_h), _ = cv2.getTextSize(self.username, FONT, self.layout.header_font_scale, 2)
        cv2.putText(canvas, self.username,
                    (self.layout.padding_x, self.layout.padding_top + text_h),
                    FONT, self.layout.header_font_scale, WHITE, 2, cv2.LINE_AA)

    def draw_entry(self, canvas: np.ndarray, placed: PlacedMessage) -> None:
        """Draw one message with outline and fill at the entry's opacity."""
        if placed.alpha <= 0.0:
            return

        layout = self.layout
        canvas_h, canvas_w = canvas.shape[:2]
        max_w = layout.text_width(canvas_w)

        top = int(round(placed.y))
        x1, y1 = layout.padding_x, top
        x2 = min(canvas_w, int(layout.padding_x + max(max_w, 0)))
        y2 = min(canvas_h, y1 + layout.box_height)
        y1 = max(0, y1)
        if x2 <= x1 or y2 <= y1:
            return

        roi = canvas[y1:y2, x1:x2]
        overlay = roi.copy()
        outline = hue_to_bgr(placed.hue)

        lines = wrap_text(placed.message.text, max_w, layout.font_scale)
        (_, line_h), base = cv2.getTextSize("Ag", FONT, layout.font_scale, 1)
        # Text is positioned relative to the unclipped box top
        ty = top - y1 + line_h + 2
        for line in lines:
            org = (0, ty)
            cv2.putText(overlay, line, org, FONT, layout.font_scale, outline,
                        1 + 2 * layout.outline_thickness, cv2.LINE_AA)
            cv2.putText(overlay, line, org, FONT, layout.font_scale, WHITE, 1, cv2.LINE_AA)
            ty += line_h + base + 2

        canvas[y1:y2, x1:x2] = cv2.addWeighted(overlay, placed.alpha, roi, 1 - placed.alpha, 0)

    def draw_comment_bar(self, canvas: np.ndarray) -> None:
        """Inert comment box and buttons; purely decorative."""
        height, width = canvas.shape[:2]
        (ix, iy, iw, ih), button_xs, size = comment_bar_geometry(width, height, self.layout)
        ix, iy, iw, ih = int(ix), int(iy), int(iw), int(ih)
        if iw <= 0:
            return

        overlay = canvas.copy()
        cv2.rectangle(overlay, (ix, iy), (ix + iw, iy + ih), WHITE, 2, cv2.LINE_AA)
        cv2.addWeighted(overlay, 0.5, canvas, 0.5, 0, canvas)

        cv2.putText(canvas, "comments...", (ix + 12, iy + ih // 2 + 6),
                    FONT, self.layout.font_scale, (200, 200, 200), 1, cv2.LINE_AA)

        for kind, bx in zip(("smile", "send", "heart"), button_xs):
            self._draw_button(canvas, kind, int(bx), iy, size)

    @staticmethod
    def _draw_button(canvas: np.ndarray, kind: str, x: int, y: int, size: int) -> None:
        cx, cy = x + size // 2, y + size // 2
        r = size // 4
        if kind == "smile":
            cv2.circle(canvas, (cx, cy), r, WHITE, 2, cv2.LINE_AA)
            cv2.ellipse(canvas, (cx, cy), (r // 2, r // 2), 0, 20, 160, WHITE, 1, cv2.LINE_AA)
        elif kind == "send":
            pts = np.array([[cx - r, cy - r], [cx + r, cy], [cx - r, cy + r], [cx - r // 2, cy]],
                           dtype=np.int32)
            cv2.polylines(canvas, [pts], True, WHITE, 2, cv2.LINE_AA)
        else:
            cv2.putText(canvas, "<3", (cx - r, cy + r // 2), FONT, 0.6, WHITE, 2, cv2.LINE_AA)
