import numpy as np
from PIL import Image

from pixpen.models.domain import PixelRect, SelectionState
from pixpen.services.overlay import HIGHLIGHT, OverlayRenderer, OverlayStyle, badge_center
from pixpen.tests.helpers import make_object

SIZE = (800, 600)


def _left_half_mask() -> Image.Image:
    # Aligned mask for box (100, 100, 500, 500): covers x 80..240, y 60..300
    arr = np.zeros((600, 800), dtype=np.uint8)
    arr[60:300, 80:240] = 255
    return Image.fromarray(arr)


def _alpha(canvas, x, y) -> int:
    return canvas.image.getpixel((x, y))[3]


def test_inactive_overlay_is_fully_transparent():
    objects = [make_object(0, (100, 100, 500, 500))]
    state = SelectionState(hovered_id="obj_0", selected_ids=["obj_0"])

    canvas = OverlayRenderer().render(objects, state, SIZE, active=False)

    assert canvas.size == SIZE
    assert canvas.image.getextrema()[3] == (0, 0)


def test_selected_fill_follows_mask_silhouette():
    obj = make_object(0, (100, 100, 500, 500), mask=_left_half_mask())
    canvas = OverlayRenderer().render([obj], SelectionState(selected_ids=["obj_0"]), SIZE)

    inside = canvas.image.getpixel((120, 200))
    assert inside[3] > 0
    assert all(abs(a - b) <= 2 for a, b in zip(inside[:3], HIGHLIGHT))
    # inside the box but outside the mask, away from border and badge
    assert _alpha(canvas, 300, 200) == 0
    # solid border on the box edge
    assert _alpha(canvas, 300, 60) == 255


def test_hover_without_mask_fills_the_box():
    obj = make_object(0, (100, 100, 500, 500), mask=None)
    canvas = OverlayRenderer().render([obj], SelectionState(hovered_id="obj_0"), SIZE)

    assert _alpha(canvas, 300, 200) > 0
    assert _alpha(canvas, 500, 500) == 0


def test_selected_is_stronger_than_hovered():
    obj = make_object(0, (100, 100, 500, 500), mask=None)
    renderer = OverlayRenderer()

    hovered = renderer.render([obj], SelectionState(hovered_id="obj_0"), SIZE)
    selected = renderer.render([obj], SelectionState(selected_ids=["obj_0"]), SIZE)

    assert _alpha(selected, 300, 200) > _alpha(hovered, 300, 200)


def test_idle_objects_only_get_badges():
    obj = make_object(0, (100, 100, 500, 500), mask=None)
    canvas = OverlayRenderer().render([obj], SelectionState(), SIZE)

    cx, cy = badge_center(PixelRect(80, 60, 320, 240), *SIZE, 16)
    assert _alpha(canvas, int(cx), int(cy) - 8) > 0
    assert _alpha(canvas, 300, 200) == 0
    assert _alpha(canvas, 80, 60) == 0


def test_idle_outline_when_enabled():
    obj = make_object(0, (100, 100, 500, 500), mask=None)
    renderer = OverlayRenderer(style=OverlayStyle(idle_outline=True))
    canvas = renderer.render([obj], SelectionState(), SIZE)

    assert _alpha(canvas, 300, 60) > 0


def test_badge_center_is_clamped_inside_canvas():
    assert badge_center(PixelRect(0, 0, 10, 10), 800, 600, 16) == (16, 16)
    assert badge_center(PixelRect(790, 590, 10, 10), 800, 600, 16) == (784, 584)
    assert badge_center(PixelRect(100, 100, 200, 100), 800, 600, 16) == (200, 150)


def test_render_png_round_trips_to_rgba():
    obj = make_object(0, (100, 100, 500, 500), mask=None)
    png = OverlayRenderer().render_png([obj], SelectionState(), SIZE)
    assert png.startswith(b"\x89PNG")
