from __future__ import annotations

from dataclasses import dataclass, field

from PIL import Image

# [ymin, xmin, ymax, xmax] on the model's 0-1000 grid
Box = tuple[float, float, float, float]


@dataclass(frozen=True)
class Detection:
    """Unvalidated candidate straight out of the response parser."""
    box: list[float]
    mask: str
    label: str | None = None


@dataclass(frozen=True)
class PixelRect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, px: float, py: float) -> bool:
        # Edges inclusive on both sides
        return self.x <= px <= self.right and self.y <= py <= self.bottom


@dataclass(frozen=True)
class SegmentObject:
    id: str
    ordinal: int
    box: Box
    mask: Image.Image | None = field(compare=False, repr=False)
    mask_file: bytes = field(compare=False, repr=False)
    label: str | None = None

    @property
    def display_number(self) -> int:
        return self.ordinal + 1


@dataclass
class SelectionState:
    """Hover id plus ordered, id-deduplicated selection."""
    hovered_id: str | None = None
    selected_ids: list[str] = field(default_factory=list)

    def is_selected(self, object_id: str) -> bool:
        return object_id in self.selected_ids
