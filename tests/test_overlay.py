import pytest
from PIL import Image

from core.detection import DetectionPoint, PointsResult, TrajectoryResult
from core.overlay import (
    BOX_LINE_WIDTH,
    FONT_SIZE,
    GREEN,
    MAGENTA,
    RED,
    TRANSPARENT,
    OverlayCanvas,
    compose,
    draw_status,
    render_overlay,
    to_pixel,
)


@pytest.mark.parametrize("yx, size, expected", [
    ((0, 0), (640, 480), (0.0, 0.0)),
    ((1000, 1000), (640, 480), (640.0, 480.0)),
    ((250, 750), (640, 480), (480.0, 120.0)),
    ((500, 100), (1920, 1080), (192.0, 540.0)),
    ((333, 777), (1001, 99), (777 / 1000 * 1001, 333 / 1000 * 99)),
])
def test_to_pixel_scales_x_by_width_and_y_by_height(yx, size, expected):
    assert to_pixel(yx, *size) == expected


def test_to_pixel_does_not_swap_axes():
    px, py = to_pixel((100, 900), 1000, 1000)
    assert (px, py) == (900.0, 100.0)


def test_point_marker_and_box():
    result = PointsResult(items=[DetectionPoint(point=(500, 500), label=None, box=(200, 200, 800, 800))])
    image = render_overlay(result, 1000, 1000)

    assert image.mode == "RGBA"
    assert image.getpixel((500, 500)) == GREEN
    # stroked edge of the box
    assert image.getpixel((200 + BOX_LINE_WIDTH // 2, 350))[:3] == GREEN[:3]
    # low-opacity fill inside the box, away from the marker
    inside = image.getpixel((300, 300))
    assert inside[:3] == (0, 255, 0)
    assert 0 < inside[3] < 64
    # nothing outside the box
    assert image.getpixel((50, 50)) == TRANSPARENT


def test_point_label_has_dark_outline():
    result = PointsResult(items=[DetectionPoint(point=(500, 500), label="banana")])
    image = render_overlay(result, 1000, 1000)
    label_region = image.crop((512, 470, 600, 500))
    colors = {px[:3] for px in label_region.getdata() if px[3] > 0}
    assert (0, 0, 0) in colors


def test_trajectory_start_green_end_red():
    result = TrajectoryResult(path=[(500, 500), (480, 510)], label="red mug")
    image = render_overlay(result, 2000, 2000)

    start = to_pixel((500, 500), 2000, 2000)
    end = to_pixel((480, 510), 2000, 2000)
    assert image.getpixel(tuple(map(int, start))) == GREEN
    assert image.getpixel(tuple(map(int, end))) == RED


def test_trajectory_intermediate_waypoints_and_polyline():
    result = TrajectoryResult(path=[(900, 100), (500, 500), (100, 900)], label="")
    image = render_overlay(result, 1000, 1000)

    assert image.getpixel((100, 900)) == GREEN
    assert image.getpixel((500, 500)) == MAGENTA
    assert image.getpixel((900, 100)) == RED
    # on the segment between waypoints
    assert image.getpixel((300, 700)) == MAGENTA


def test_empty_trajectory_draws_nothing():
    image = render_overlay(TrajectoryResult(path=[], label="x"), 100, 100)
    assert image.getbbox() is None


def test_redraw_clears_previous_overlay():
    canvas = OverlayCanvas(1000, 1000)
    canvas.redraw(PointsResult(items=[DetectionPoint(point=(100, 100))]))
    assert canvas.image.getpixel((100, 100)) == GREEN

    canvas.redraw(PointsResult(items=[DetectionPoint(point=(900, 900))]))
    assert canvas.image.getpixel((100, 100)) == TRANSPARENT
    assert canvas.image.getpixel((900, 900)) == GREEN

    canvas.redraw(None)
    assert canvas.image.getbbox() is None


def test_compose_onto_frame():
    frame = Image.new("RGB", (200, 100), (10, 20, 30))
    overlay = render_overlay(PointsResult(items=[DetectionPoint(point=(500, 500))]), 200, 100)
    out = compose(frame, overlay)

    assert out.mode == "RGB"
    assert out.size == (200, 100)
    assert out.getpixel((100, 50)) == GREEN[:3]
    assert out.getpixel((5, 5)) == (10, 20, 30)


def test_canvas_uses_sized_default_font():
    assert OverlayCanvas(10, 10).font.size == FONT_SIZE


def test_status_text_is_drawn_top_left():
    image = Image.new("RGB", (300, 120), (0, 0, 0))
    draw_status(image, ["latency: 12 ms  fps: 2.0"])
    assert image.crop((8, 8, 200, 30)).convert("L").getextrema()[1] > 200
    assert image.getpixel((250, 100)) == (0, 0, 0)
