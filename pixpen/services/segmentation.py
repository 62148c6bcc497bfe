from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from pixpen.core.errors import NoObjectsDetected
from pixpen.models.domain import SegmentObject
from pixpen.services.gemini import GeminiClient, image_part, response_text, text_part
from pixpen.services.geometry import as_box, is_valid_box
from pixpen.services.image_io import ImageIOService, ensure_png_data_url, from_data_url
from pixpen.services.mask_aligner import MaskAligner
from pixpen.services.raster import RasterBuffer, RasterError
from pixpen.services.response_parser import parse_segmentation_response
from pixpen.core.logging import timed

SEGMENTATION_PROMPT = (
    "Give the segmentation masks for the objects.\n"
    "Output a JSON list of segmentation masks where each entry contains the 2D bounding box "
    'in "box_2d", the mask in "mask", and a short text description in "label".'
)


@dataclass
class SegmentationService:
    """
    Ask the vision model for object masks and turn its reply into SegmentObjects.

    Masks returned by segment() are still box-local at request resolution;
    segment_and_align() also runs them through the MaskAligner.
    """
    client: GeminiClient
    image_io: ImageIOService
    aligner: MaskAligner
    model: str = "gemini-2.5-flash"

    async def segment(self, image: bytes) -> list[SegmentObject]:
        with timed("Segmentation input compression"):
            compressed = self.image_io.compress_for_segmentation(image)

        with timed("Segmentation request"):
            payload = await self.client.generate_content(
                self.model,
                [text_part(SEGMENTATION_PROMPT), image_part(compressed, "image/jpeg")],
                service="segmentation",
            )

        detections = parse_segmentation_response(response_text(payload))
        logger.info(f"Parsed {len(detections)} candidate detections")

        objects: list[SegmentObject] = []
        for index, det in enumerate(detections):
            if not is_valid_box(det.box):
                logger.warning(f"Skipping detection {index}: invalid box {det.box}")
                continue
            try:
                _, mask_bytes = from_data_url(ensure_png_data_url(det.mask))
                mask = RasterBuffer.decode(mask_bytes).image
            except (ValueError, RasterError) as e:
                logger.warning(f"Skipping detection {index}: unreadable mask ({e})")
                continue

            ordinal = len(objects)
            objects.append(
                SegmentObject(
                    id=f"obj_{ordinal}",
                    ordinal=ordinal,
                    box=as_box(det.box),
                    mask=mask,
                    mask_file=mask_bytes,
                    label=det.label,
                )
            )

        if not objects:
            raise NoObjectsDetected(
                "No objects detected in the image. The model response may be in an unexpected format."
            )
        logger.info(f"Segmentation produced {len(objects)} objects")
        return objects

    async def segment_and_align(self, image: bytes) -> list[SegmentObject]:
        objects = await self.segment(image)
        with timed("Mask alignment"):
            return await self.aligner.align(objects, image)
