from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from pixpen.core.errors import CompositeFailure
from pixpen.models.domain import SegmentObject
from pixpen.services.raster import RasterBuffer, RasterError


@dataclass
class MaskCompositor:
    """Builds the single binary mask handed to the edit model (white = editable)."""

    def composite(self, masks: list[bytes]) -> bytes:
        """
        Union of same-size binary masks.

        A single mask is returned untouched. Several are drawn onto a black
        canvas with a pixel-wise maximum, so any pixel opaque in one of them
        stays opaque.
        """
        if not masks:
            raise CompositeFailure("No masks to composite")
        if len(masks) == 1:
            return masks[0]

        buffers = []
        for index, data in enumerate(masks):
            try:
                buffers.append(RasterBuffer.decode(data))
            except RasterError as e:
                raise CompositeFailure(f"Mask {index} has unreadable dimensions: {e}") from e

        width, height = buffers[0].size
        mismatched = [i for i, b in enumerate(buffers) if b.size != (width, height)]
        if mismatched:
            raise CompositeFailure(
                f"Masks {mismatched} do not match the {width}x{height} size of mask 0"
            )

        try:
            canvas = RasterBuffer.allocate(width, height, mode="L", fill=0)
            for buffer in buffers:
                canvas.blend_max(buffer)
            return canvas.encode()
        except RasterError as e:
            raise CompositeFailure(f"Could not build union mask: {e}") from e

    def whole_image(self, width: int, height: int) -> bytes:
        try:
            return RasterBuffer.allocate(width, height, mode="L", fill=255).encode()
        except RasterError as e:
            raise CompositeFailure(f"Could not build whole-image mask: {e}") from e

    def build_edit_mask(
        self,
        selected: list[SegmentObject],
        image_size: tuple[int, int],
        whole_image: bool = False,
    ) -> bytes:
        if whole_image:
            logger.debug(f"Whole-image edit mask {image_size[0]}x{image_size[1]}")
            return self.whole_image(*image_size)
        if not selected:
            raise CompositeFailure("No objects selected for an object-precise edit")
        logger.debug(f"Compositing {len(selected)} object masks")
        return self.composite([obj.mask_file for obj in selected])
