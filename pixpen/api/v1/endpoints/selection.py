from __future__ import annotations

from fastapi import APIRouter, Depends

from pixpen.dependencies.container import Container, get_container
from pixpen.models.schemas import PointerEvent, PointerResponse, SelectionResponse

router = APIRouter()


@router.post("/sessions/{session_id}/pointer", response_model=PointerResponse)
async def pointer(
    session_id: str,
    event: PointerEvent,
    container: Container = Depends(get_container),
) -> PointerResponse:
    """
    Hit-test a pointer event. hover updates the hovered object, click
    toggles the hit object in the selection, leave clears the hover.
    Ignored while the session is segmenting or loading.
    """
    session = container.sessions.get(session_id)
    hit = container.editor.pointer(
        session, event.action, event.x, event.y, display_size=event.display_size
    )
    return PointerResponse(
        hit_id=hit,
        hovered_id=session.state.hovered_id,
        selected_ids=list(session.state.selected_ids),
        active=session.is_active,
    )


@router.post("/sessions/{session_id}/selection/clear", response_model=SelectionResponse)
async def clear_selection(
    session_id: str,
    container: Container = Depends(get_container),
) -> SelectionResponse:
    session = container.sessions.get(session_id)
    session.clear_selection()
    return SelectionResponse(selected_ids=[])


@router.post("/sessions/{session_id}/selection/{object_id}", response_model=SelectionResponse)
async def toggle_selection(
    session_id: str,
    object_id: str,
    container: Container = Depends(get_container),
) -> SelectionResponse:
    """Toggle an object by id (selection chips in the side panel)."""
    session = container.sessions.get(session_id)
    session.toggle_selection(object_id)
    return SelectionResponse(selected_ids=list(session.state.selected_ids))


@router.delete("/sessions/{session_id}/selection/{object_id}", response_model=SelectionResponse)
async def remove_from_selection(
    session_id: str,
    object_id: str,
    container: Container = Depends(get_container),
) -> SelectionResponse:
    session = container.sessions.get(session_id)
    session.remove_from_selection(object_id)
    return SelectionResponse(selected_ids=list(session.state.selected_ids))
