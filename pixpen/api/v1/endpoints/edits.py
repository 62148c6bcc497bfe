from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Response
from loguru import logger

from pixpen.dependencies.container import Container, get_container
from pixpen.models.schemas import EditMaskRequest, EditRequest, EditResponse, FilterRequest
from pixpen.services.image_io import to_data_url

router = APIRouter()


@router.post(
    "/sessions/{session_id}/edit-mask",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def edit_mask(
    session_id: str,
    body: EditMaskRequest,
    container: Container = Depends(get_container),
) -> Response:
    """The binary mask an edit would send: union of selected objects, or all white."""
    session = container.sessions.get(session_id)
    png = await asyncio.to_thread(container.editor.build_edit_mask, session, body.whole_image)
    return Response(content=png, media_type="image/png")


@router.post("/sessions/{session_id}/edit", response_model=EditResponse)
async def edit(
    session_id: str,
    body: EditRequest,
    container: Container = Depends(get_container),
) -> EditResponse:
    session = container.sessions.get(session_id)
    logger.info(
        f"[{session_id}] Edit request: whole_image={body.whole_image}, "
        f"selected={len(session.state.selected_ids)}"
    )
    mime_type, image = await container.editor.edit(session, body.prompt, body.whole_image)
    width, height = session.image_size
    return EditResponse(
        session_id=session.id,
        image=to_data_url(image, mime_type),
        image_width=width,
        image_height=height,
    )


@router.post("/sessions/{session_id}/filter", response_model=EditResponse)
async def apply_filter(
    session_id: str,
    body: FilterRequest,
    container: Container = Depends(get_container),
) -> EditResponse:
    session = container.sessions.get(session_id)
    logger.info(f"[{session_id}] Filter request: {body.prompt}")
    mime_type, image = await container.editor.apply_filter(session, body.prompt)
    width, height = session.image_size
    return EditResponse(
        session_id=session.id,
        image=to_data_url(image, mime_type),
        image_width=width,
        image_height=height,
    )
