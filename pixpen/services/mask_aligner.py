from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace

from loguru import logger

from pixpen.core.errors import AlignmentFailure, DimensionUnavailable
from pixpen.models.domain import SegmentObject
from pixpen.services.geometry import fits_canvas, to_pixel_rect
from pixpen.services.raster import RasterBuffer, RasterError


@dataclass
class MaskAligner:
    """
    Resample box-local model masks onto the original upload's pixel grid.

    The model paints each mask at the resolution of the compressed request
    image and only over the object's bounding box. Alignment stretches it to
    the box's footprint in original pixels, hard-thresholds it, and pastes it
    onto a full-size black canvas. Boxes stay on the 0-1000 grid.
    """
    threshold: int = 127

    async def align(self, objects: list[SegmentObject], original: bytes) -> list[SegmentObject]:
        if not objects:
            return objects

        width, height = self.target_size(original)
        logger.debug(f"Aligning {len(objects)} masks to {width}x{height}")

        # One worker per object; gather re-raises the first failure
        aligned = await asyncio.gather(
            *(asyncio.to_thread(self.align_one, obj, width, height) for obj in objects)
        )
        return list(aligned)

    @staticmethod
    def target_size(original: bytes) -> tuple[int, int]:
        try:
            width, height = RasterBuffer.decode(original).size
        except RasterError as e:
            raise DimensionUnavailable(f"Cannot read original image size: {e}") from e
        if not width or not height:
            raise DimensionUnavailable("Original image reports a zero pixel size")
        return width, height

    def align_one(self, obj: SegmentObject, width: int, height: int) -> SegmentObject:
        rect = to_pixel_rect(obj.box, width, height)
        if not fits_canvas(rect, width, height):
            raise AlignmentFailure(obj.id, f"box {obj.box} falls outside the {width}x{height} canvas")

        try:
            source = RasterBuffer.decode(obj.mask_file)
            local = source.resized(rect.width, rect.height, smooth=True).threshold_to_binary(self.threshold)
            canvas = RasterBuffer.allocate(width, height, mode="L", fill=0)
            canvas.draw_scaled(local, rect, smooth=False)
            encoded = canvas.encode()
        except RasterError as e:
            raise AlignmentFailure(obj.id, str(e)) from e

        logger.debug(f"Aligned {obj.id} at {rect}")
        return replace(obj, mask=canvas.image, mask_file=encoded)
