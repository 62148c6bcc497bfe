from __future__ import annotations

import asyncio
from dataclasses import dataclass

from loguru import logger

from pixpen.core.errors import AppError, BadRequest, EditSuperseded, SegmentationFailed, SessionBusy
from pixpen.services.editing import EditService
from pixpen.services.geometry import screen_to_canvas
from pixpen.services.image_io import ImageIOService, natural_size
from pixpen.services.mask_compositor import MaskCompositor
from pixpen.services.overlay import OverlayRenderer
from pixpen.services.segmentation import SegmentationService
from pixpen.services.session import EditSession, SessionStatus, SessionStore


@dataclass
class EditorService:
    """High-level orchestration used by the HTTP layer."""
    image_io: ImageIOService
    segmentation: SegmentationService
    compositor: MaskCompositor
    editing: EditService
    overlay: OverlayRenderer
    sessions: SessionStore

    async def open_session(self, upload: bytes) -> EditSession:
        image = self.image_io.read_upload(upload)
        session = self.sessions.create(image, natural_size(image))
        await self.resegment(session, raise_errors=False)
        return session

    async def resegment(self, session: EditSession, raise_errors: bool = True) -> bool:
        """
        Segment and align the session's current image.

        Returns False when the result was discarded because a newer request
        started meanwhile. With raise_errors=False a failure is recorded on
        the session instead of raised.
        """
        token = session.begin_segmentation()
        image = session.image
        try:
            objects = await self.segmentation.segment_and_align(image)
        except AppError as e:
            logger.warning(f"[{session.id}] Segmentation failed: {e}")
            session.fail_segmentation(token, str(e))
            if raise_errors:
                raise
            return False
        except Exception as e:
            logger.exception(f"[{session.id}] Unexpected segmentation error")
            error = SegmentationFailed(f"Segmentation failed unexpectedly: {e}")
            session.fail_segmentation(token, str(error))
            if raise_errors:
                raise error from e
            return False
        return session.apply_segmentation(token, objects)

    def replace_image(self, session: EditSession, upload: bytes) -> None:
        image = self.image_io.read_upload(upload)
        session.replace_image(image, natural_size(image))

    def pointer(
        self,
        session: EditSession,
        action: str,
        x: float = 0.0,
        y: float = 0.0,
        display_size: tuple[float, float] | None = None,
    ) -> str | None:
        if action == "leave":
            session.pointer_leave()
            return None

        if display_size is not None:
            try:
                x, y = screen_to_canvas(x, y, *display_size, *session.image_size)
            except ValueError as e:
                raise BadRequest(str(e)) from e

        if action == "hover":
            return session.pointer_move(x, y)
        if action == "click":
            return session.click(x, y)
        raise BadRequest(f"Unknown pointer action '{action}'")

    def build_edit_mask(self, session: EditSession, whole_image: bool) -> bytes:
        if not whole_image and not session.selected_objects:
            raise BadRequest("Select at least one object or use whole-image mode")
        return self.compositor.build_edit_mask(
            session.selected_objects, session.image_size, whole_image=whole_image
        )

    def render_overlay(self, session: EditSession) -> bytes:
        return self.overlay.render_png(
            session.objects, session.state, session.image_size, active=session.is_active
        )

    async def edit(self, session: EditSession, prompt: str, whole_image: bool) -> tuple[str, bytes]:
        if not prompt.strip():
            raise BadRequest("Please enter a description for your edit.")
        self._ensure_idle(session)
        mask = await asyncio.to_thread(self.build_edit_mask, session, whole_image)
        # the mask build yields to the loop; another request may have started meanwhile
        self._ensure_idle(session)

        token = session.begin_loading()
        try:
            mime_type, image = await self.editing.generate_edited_image(session.image, prompt, mask)
        finally:
            session.end_loading(token)
        self._commit(session, token, image)
        return mime_type, image

    async def apply_filter(self, session: EditSession, prompt: str) -> tuple[str, bytes]:
        if not prompt.strip():
            raise BadRequest("Please describe the filter to apply.")
        self._ensure_idle(session)

        token = session.begin_loading()
        try:
            mime_type, image = await self.editing.generate_filtered_image(session.image, prompt)
        finally:
            session.end_loading(token)
        self._commit(session, token, image)
        return mime_type, image

    @staticmethod
    def _ensure_idle(session: EditSession) -> None:
        if session.status is not SessionStatus.IDLE:
            raise SessionBusy(f"Session is busy ({session.status.value}); try again when it finishes")

    @staticmethod
    def _commit(session: EditSession, token: int, image: bytes) -> None:
        if not session.is_current(token):
            logger.info(f"[{session.id}] Discarding edit result for a superseded image")
            raise EditSuperseded(
                "The image changed while the edit was running; the result was discarded"
            )
        session.replace_image(image, natural_size(image))
        logger.info(f"[{session.id}] Committed edited image {session.image_size}")
