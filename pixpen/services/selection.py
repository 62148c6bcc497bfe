from __future__ import annotations

from typing import Iterable

from pixpen.models.domain import SegmentObject, SelectionState
from pixpen.services.geometry import box_area, to_pixel_rect


def hit_test(
    objects: Iterable[SegmentObject],
    x: float,
    y: float,
    canvas_width: int,
    canvas_height: int,
) -> str | None:
    """
    Return the id of the object under (x, y) in canvas pixels, or None.

    Overlapping boxes resolve to the smallest normalized area; equal areas
    keep list order.
    """
    hits = [
        obj for obj in objects
        if to_pixel_rect(obj.box, canvas_width, canvas_height).contains(x, y)
    ]
    if not hits:
        return None
    return min(hits, key=lambda obj: box_area(obj.box)).id


def toggle(state: SelectionState, object_id: str) -> SelectionState:
    if object_id in state.selected_ids:
        selected = [i for i in state.selected_ids if i != object_id]
    else:
        selected = [*state.selected_ids, object_id]
    return SelectionState(hovered_id=state.hovered_id, selected_ids=selected)


def remove(state: SelectionState, object_id: str) -> SelectionState:
    return SelectionState(
        hovered_id=state.hovered_id,
        selected_ids=[i for i in state.selected_ids if i != object_id],
    )


def clear(state: SelectionState) -> SelectionState:
    return SelectionState(hovered_id=state.hovered_id, selected_ids=[])


def hover(state: SelectionState, object_id: str | None) -> SelectionState:
    return SelectionState(hovered_id=object_id, selected_ids=list(state.selected_ids))


def selected_objects(objects: Iterable[SegmentObject], state: SelectionState) -> list[SegmentObject]:
    """Selected objects in selection order; ids no longer present are skipped."""
    by_id = {obj.id: obj for obj in objects}
    return [by_id[i] for i in state.selected_ids if i in by_id]
