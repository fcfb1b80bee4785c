"""
Overlay rendering for ER results.
Maps normalized [y, x] coordinates to pixels and draws points, boxes and
trajectories on a transparent Pillow canvas.
"""

import logging
from typing import Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from .detection import NORMALIZED_SCALE, DetectionResult, PointsResult, TrajectoryResult

logger = logging.getLogger(__name__)

# Colors (RGBA)
GREEN = (0, 255, 0, 255)
RED = (255, 0, 0, 255)
MAGENTA = (255, 0, 255, 255)
WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)
BOX_FILL = (0, 255, 0, 26)  # rgba(0, 255, 0, 0.1)
TRANSPARENT = (0, 0, 0, 0)

POINT_RADIUS = 8
WAYPOINT_RADIUS = 6
MARKER_OUTLINE_WIDTH = 2
BOX_LINE_WIDTH = 3
PATH_LINE_WIDTH = 4
LABEL_STROKE_WIDTH = 3
FONT_SIZE = 16
LABEL_OFFSET = (12, -8 - FONT_SIZE)  # text top-left, so the baseline sits 8px above the point


def to_pixel(normalized_yx: Sequence[float], width: float, height: float) -> Tuple[float, float]:
    """
    Convert a model coordinate to canvas pixels.

    The model answers in [y, x] (row, column) order; the result is (px, py).
    """
    y, x = normalized_yx
    return (x / NORMALIZED_SCALE) * width, (y / NORMALIZED_SCALE) * height


class OverlayCanvas:
    """
    Transparent RGBA canvas the size of the displayed video.

    Every redraw clears the whole canvas first, so overlays from earlier
    frames never accumulate.
    """

    def __init__(self, width: int, height: int):
        self.width = int(width)
        self.height = int(height)
        self.image = Image.new("RGBA", (self.width, self.height), TRANSPARENT)
        self.font = ImageFont.load_default(size=FONT_SIZE)

    def clear(self):
        self.image.paste(TRANSPARENT, (0, 0, self.width, self.height))

    def resize(self, width: int, height: int):
        """Match a new video size. Leaves a cleared canvas."""
        self.width, self.height = int(width), int(height)
        self.image = Image.new("RGBA", (self.width, self.height), TRANSPARENT)

    def redraw(self, result: Optional[DetectionResult]) -> Image.Image:
        self.clear()
        if isinstance(result, TrajectoryResult):
            self._draw_trajectory(result)
        elif isinstance(result, PointsResult):
            self._draw_points(result)
        return self.image

    def _px(self, normalized_yx) -> Tuple[float, float]:
        return to_pixel(normalized_yx, self.width, self.height)

    def _marker(self, draw: ImageDraw.ImageDraw, center, radius: int, fill):
        px, py = center
        draw.ellipse(
            [px - radius, py - radius, px + radius, py + radius],
            fill=fill,
            outline=WHITE,
            width=MARKER_OUTLINE_WIDTH
        )

    def _label(self, draw: ImageDraw.ImageDraw, anchor, text: str, fill):
        px, py = anchor
        draw.text(
            (px + LABEL_OFFSET[0], py + LABEL_OFFSET[1]),
            text,
            fill=fill,
            font=self.font,
            stroke_width=LABEL_STROKE_WIDTH,
            stroke_fill=BLACK
        )

    def _box_rect(self, box) -> list:
        ymin, xmin, ymax, xmax = box
        x1, y1 = self._px((ymin, xmin))
        x2, y2 = self._px((ymax, xmax))
        left, right = sorted((x1, x2))
        top, bottom = sorted((y1, y2))
        return [left, top, right, bottom]

    def _draw_points(self, result: PointsResult):
        # RGBA draws overwrite pixels: fills, then outlines, markers, labels
        draw = ImageDraw.Draw(self.image)
        boxes = [self._box_rect(item.box) for item in result.items if item.box]
        for rect in boxes:
            draw.rectangle(rect, fill=BOX_FILL)
        for rect in boxes:
            draw.rectangle(rect, outline=GREEN, width=BOX_LINE_WIDTH)

        centers = [self._px(item.point) for item in result.items]
        for center in centers:
            self._marker(draw, center, POINT_RADIUS, GREEN)
        for item, center in zip(result.items, centers):
            if item.label:
                self._label(draw, center, item.label, GREEN)

    def _draw_trajectory(self, result: TrajectoryResult):
        if not result.path:
            return

        draw = ImageDraw.Draw(self.image)
        pixels = [self._px(p) for p in result.path]

        if len(pixels) > 1:
            draw.line(pixels, fill=MAGENTA, width=PATH_LINE_WIDTH, joint="curve")

        last = len(pixels) - 1
        for idx, center in enumerate(pixels):
            if idx == 0:
                color = GREEN
            elif idx == last:
                color = RED
            else:
                color = MAGENTA
            self._marker(draw, center, WAYPOINT_RADIUS, color)

        if result.label:
            self._label(draw, pixels[0], result.label, MAGENTA)


def render_overlay(result: Optional[DetectionResult], width: int, height: int) -> Image.Image:
    """Draw a result on a fresh transparent canvas."""
    return OverlayCanvas(width, height).redraw(result)


def compose(frame: Image.Image, overlay: Image.Image) -> Image.Image:
    """Alpha-composite an overlay onto a video frame, scaling the overlay if sizes differ."""
    base = frame.convert("RGBA")
    if overlay.size != base.size:
        overlay = overlay.resize(base.size, Image.LANCZOS)
    return Image.alpha_composite(base, overlay).convert("RGB")


def draw_status(image: Image.Image, lines: Sequence[str], font: Optional[ImageFont.ImageFont] = None) -> Image.Image:
    """Write status lines (mode, latency, fps) in the top-left corner, in place."""
    font = font or ImageFont.load_default(size=FONT_SIZE)
    draw = ImageDraw.Draw(image)
    y = 8
    for line in lines:
        draw.text((8, y), line, fill=WHITE, font=font, stroke_width=2, stroke_fill=BLACK)
        y += FONT_SIZE + 6
    return image
