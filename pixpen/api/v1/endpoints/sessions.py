from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from loguru import logger

from pixpen.core.errors import BadRequest
from pixpen.dependencies.container import Container, get_container
from pixpen.models.schemas import SessionResponse

router = APIRouter()


async def _read_image(image: UploadFile) -> bytes:
    if not image.filename:
        raise BadRequest("Image file is required")
    return await image.read()


@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def open_session(
    image: UploadFile = File(...),
    container: Container = Depends(get_container),
) -> SessionResponse:
    """
    Upload an image, start a session and run the first segmentation.
    A segmentation failure is reported in segmentation_error; the session
    stays usable (re-segment or whole-image edits).
    """
    logger.info(f"New session upload: {image.filename}")
    data = await _read_image(image)
    session = await container.editor.open_session(data)
    return SessionResponse.from_session(session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    include_masks: bool = True,
    container: Container = Depends(get_container),
) -> SessionResponse:
    session = container.sessions.get(session_id)
    return SessionResponse.from_session(session, include_masks=include_masks)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session_id: str,
    container: Container = Depends(get_container),
) -> Response:
    container.sessions.drop(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/sessions/{session_id}/segment", response_model=SessionResponse)
async def resegment(
    session_id: str,
    container: Container = Depends(get_container),
) -> SessionResponse:
    """Re-run segmentation on the current image, replacing the object list."""
    session = container.sessions.get(session_id)
    applied = await container.editor.resegment(session)
    if not applied:
        logger.info(f"[{session_id}] Re-segmentation superseded by a newer request")
    return SessionResponse.from_session(session)


@router.put("/sessions/{session_id}/image", response_model=SessionResponse)
async def replace_image(
    session_id: str,
    image: UploadFile = File(...),
    container: Container = Depends(get_container),
) -> SessionResponse:
    """
    Swap in another image (undo/redo from the client's history, or a new
    upload). Objects and selection are dropped; call /segment afterwards.
    """
    session = container.sessions.get(session_id)
    data = await _read_image(image)
    container.editor.replace_image(session, data)
    return SessionResponse.from_session(session)


@router.get(
    "/sessions/{session_id}/overlay.png",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def overlay(
    session_id: str,
    container: Container = Depends(get_container),
) -> Response:
    """Transparent highlight overlay at the image's natural size."""
    session = container.sessions.get(session_id)
    png = await asyncio.to_thread(container.editor.render_overlay, session)
    return Response(content=png, media_type="image/png", headers={"Cache-Control": "no-store"})
