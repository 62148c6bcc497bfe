from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger
from PIL import ImageDraw, ImageFont

from pixpen.models.domain import PixelRect, SegmentObject, SelectionState
from pixpen.services.geometry import to_pixel_rect
from pixpen.services.raster import Color, RasterBuffer

HIGHLIGHT = (59, 130, 246)
TRANSPARENT: Color = (0, 0, 0, 0)
WHITE: Color = (255, 255, 255, 255)


def _rgba(rgb: tuple[int, int, int], alpha: float) -> Color:
    return (*rgb, round(alpha * 255))


@dataclass(frozen=True)
class OverlayStyle:
    hover_mask_fill: Color = _rgba(HIGHLIGHT, 0.2)
    hover_box_fill: Color = _rgba(HIGHLIGHT, 0.15)
    selected_mask_fill: Color = _rgba(HIGHLIGHT, 0.35)
    selected_box_fill: Color = _rgba(HIGHLIGHT, 0.25)
    border: Color = _rgba(HIGHLIGHT, 1.0)
    selected_border_width: int = 3
    hover_border_width: int = 2
    dash: tuple[int, int] = (5, 5)
    idle_outline: bool = False
    idle_outline_color: Color = _rgba(HIGHLIGHT, 0.35)
    badge_radius: int = 12
    badge_margin: int = 4
    badge_selected_fill: Color = (37, 99, 235, 255)
    badge_hovered_fill: Color = _rgba(HIGHLIGHT, 0.9)
    badge_idle_fill: Color = _rgba((15, 23, 42), 0.65)
    badge_selected_stroke: Color = (29, 78, 216, 255)
    badge_stroke: Color = _rgba((255, 255, 255), 0.9)
    badge_font_size: int = 12


@dataclass
class OverlayRenderer:
    """
    Draws object highlights on a transparent canvas sized to the image's
    natural pixels. Each call starts from a cleared canvas.

    Precedence per object is selected > hovered > idle. Fills follow the
    object's mask silhouette when one is available, else its box.
    """
    style: OverlayStyle = field(default_factory=OverlayStyle)

    def render(
        self,
        objects: list[SegmentObject],
        state: SelectionState,
        size: tuple[int, int],
        active: bool = True,
    ) -> RasterBuffer:
        width, height = size
        canvas = RasterBuffer.allocate(width, height, mode="RGBA", fill=TRANSPARENT)
        if not active:
            return canvas

        for obj in objects:
            rect = to_pixel_rect(obj.box, width, height)
            if state.is_selected(obj.id):
                self._draw_highlight(canvas, obj, rect, selected=True)
            elif obj.id == state.hovered_id:
                self._draw_highlight(canvas, obj, rect, selected=False)
            elif self.style.idle_outline:
                draw = ImageDraw.Draw(canvas.image, "RGBA")
                draw.rectangle(_corners(rect), outline=self.style.idle_outline_color, width=1)

        self._draw_badges(canvas, objects, state)
        logger.debug(
            f"Rendered overlay {width}x{height}: {len(objects)} objects, "
            f"{len(state.selected_ids)} selected, hovered={state.hovered_id}"
        )
        return canvas

    def render_png(self, *args, **kwargs) -> bytes:
        return self.render(*args, **kwargs).encode()

    def _draw_highlight(self, canvas: RasterBuffer, obj: SegmentObject, rect: PixelRect, selected: bool) -> None:
        s = self.style
        if obj.mask is not None:
            color = s.selected_mask_fill if selected else s.hover_mask_fill
            layer = RasterBuffer.allocate(canvas.width, canvas.height, mode="RGBA", fill=color)
            canvas.composite_over(layer.clip_to(RasterBuffer(obj.mask)))
        else:
            color = s.selected_box_fill if selected else s.hover_box_fill
            ImageDraw.Draw(canvas.image, "RGBA").rectangle(_corners(rect), fill=color)

        draw = ImageDraw.Draw(canvas.image, "RGBA")
        if selected:
            draw.rectangle(_corners(rect), outline=s.border, width=s.selected_border_width)
        else:
            _dashed_rectangle(draw, rect, s.border, s.hover_border_width, s.dash)

    def _draw_badges(self, canvas: RasterBuffer, objects: list[SegmentObject], state: SelectionState) -> None:
        s = self.style
        draw = ImageDraw.Draw(canvas.image, "RGBA")
        font = ImageFont.load_default(size=s.badge_font_size)
        r = s.badge_radius
        for obj in objects:
            rect = to_pixel_rect(obj.box, canvas.width, canvas.height)
            cx, cy = badge_center(rect, canvas.width, canvas.height, r + s.badge_margin)

            if state.is_selected(obj.id):
                fill, stroke = s.badge_selected_fill, s.badge_selected_stroke
            elif obj.id == state.hovered_id:
                fill, stroke = s.badge_hovered_fill, s.badge_stroke
            else:
                fill, stroke = s.badge_idle_fill, s.badge_stroke

            draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=fill, outline=stroke, width=2)
            text = str(obj.display_number)
            left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
            draw.text(
                (cx - (right - left) / 2 - left, cy - (bottom - top) / 2 - top),
                text,
                fill=WHITE,
                font=font,
            )


def badge_center(rect: PixelRect, width: int, height: int, inset: int) -> tuple[float, float]:
    """Box centre, clamped to stay inset pixels away from every canvas edge."""
    cx = rect.x + rect.width / 2
    cy = rect.y + rect.height / 2
    cx = min(max(cx, inset), width - inset)
    cy = min(max(cy, inset), height - inset)
    return cx, cy


def _corners(rect: PixelRect) -> tuple[int, int, int, int]:
    return rect.x, rect.y, rect.right - 1, rect.bottom - 1


def _dashed_rectangle(
    draw: ImageDraw.ImageDraw,
    rect: PixelRect,
    color: Color,
    width: int,
    dash: tuple[int, int],
) -> None:
    x0, y0, x1, y1 = _corners(rect)
    on, off = dash
    for (ax, ay), (bx, by) in (
        ((x0, y0), (x1, y0)),
        ((x1, y0), (x1, y1)),
        ((x1, y1), (x0, y1)),
        ((x0, y1), (x0, y0)),
    ):
        length = max(abs(bx - ax), abs(by - ay))
        if length == 0:
            continue
        dx, dy = (bx - ax) / length, (by - ay) / length
        pos = 0
        while pos < length:
            end = min(pos + on, length)
            draw.line(
                (ax + dx * pos, ay + dy * pos, ax + dx * end, ay + dy * end),
                fill=color,
                width=width,
            )
            pos += on + off
