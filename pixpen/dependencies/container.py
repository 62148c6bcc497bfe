from __future__ import annotations

from dataclasses import dataclass
from fastapi import Request

from pixpen.core.config import Settings

from pixpen.services.gemini import GeminiClient
from pixpen.services.image_io import ImageIOService
from pixpen.services.mask_aligner import MaskAligner
from pixpen.services.mask_compositor import MaskCompositor
from pixpen.services.segmentation import SegmentationService
from pixpen.services.editing import EditService
from pixpen.services.overlay import OverlayRenderer, OverlayStyle
from pixpen.services.session import SessionStore

from pixpen.services.editor_service import EditorService


# ============================
# Dependency Injection Container
# ============================

@dataclass(frozen=True)
class Container:
    settings: Settings

    # Transport
    gemini: GeminiClient

    # Low-level services
    image_io: ImageIOService
    aligner: MaskAligner
    compositor: MaskCompositor
    segmentation: SegmentationService
    editing: EditService
    overlay: OverlayRenderer

    # Session state
    sessions: SessionStore

    # High-level orchestration
    editor: EditorService

    # ----------------------------
    # Factory
    # ----------------------------
    @classmethod
    def from_settings(cls, settings: Settings, gemini: GeminiClient | None = None) -> "Container":
        from loguru import logger

        # ---- Remote models ----
        if gemini is None:
            gemini = GeminiClient(
                api_key=settings.gemini_api_key,
                api_base=settings.gemini_api_base,
                timeout_seconds=settings.gemini_timeout_seconds,
            )
        if not settings.gemini_api_key:
            logger.warning("GEMINI_API_KEY is not set; segmentation and edit calls will fail")

        # ---- Image I/O & mask pipeline ----
        image_io = ImageIOService(
            max_file_size_mb=settings.image_max_size_mb,
            min_dimension=settings.image_min_dimension,
            segmentation_max_edge=settings.segmentation_max_edge,
            segmentation_jpeg_quality=settings.segmentation_jpeg_quality,
        )
        aligner = MaskAligner(threshold=settings.mask_threshold)
        compositor = MaskCompositor()

        segmentation = SegmentationService(
            client=gemini,
            image_io=image_io,
            aligner=aligner,
            model=settings.gemini_segmentation_model,
        )
        editing = EditService(client=gemini, model=settings.gemini_image_model)
        logger.info(
            f"Using {settings.gemini_segmentation_model} for segmentation, "
            f"{settings.gemini_image_model} for edits"
        )

        overlay = OverlayRenderer(style=OverlayStyle(idle_outline=settings.overlay_idle_outline))
        sessions = SessionStore()

        # ---- Orchestration ----
        editor = EditorService(
            image_io=image_io,
            segmentation=segmentation,
            compositor=compositor,
            editing=editing,
            overlay=overlay,
            sessions=sessions,
        )

        return cls(
            settings=settings,
            gemini=gemini,
            image_io=image_io,
            aligner=aligner,
            compositor=compositor,
            segmentation=segmentation,
            editing=editing,
            overlay=overlay,
            sessions=sessions,
            editor=editor,
        )

    # ----------------------------
    # Lifecycle Hooks
    # ----------------------------
    async def start(self) -> None:
        """
        Called on FastAPI startup.
        """
        await self.gemini.start()

    async def stop(self) -> None:
        """
        Called on FastAPI shutdown.
        """
        await self.gemini.stop()
        self.sessions.clear()


# ============================
# FastAPI Dependency
# ============================

def get_container(request: Request) -> Container:
    return request.app.state.container
