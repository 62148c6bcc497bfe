from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from io import BytesIO

from loguru import logger
from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError

from pixpen.core.errors import BadRequest, DimensionUnavailable
from pixpen.services.geometry import longest_edge_fit

PNG_DATA_URL_PREFIX = "data:image/png;base64,"
_DATA_URL_HEADER = re.compile(r"^data:(.*?);base64$")


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"


def from_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a base64 data URL into (mime type, raw bytes)."""
    header, sep, payload = data_url.partition(",")
    if not sep:
        raise ValueError("Invalid data URL")
    match = _DATA_URL_HEADER.match(header)
    if not match or not match.group(1):
        raise ValueError("Could not parse MIME type from data URL")
    try:
        return match.group(1), base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 payload in data URL: {e}") from e


def ensure_png_data_url(mask: str) -> str:
    """The model sometimes sends bare base64 without the data URL header."""
    return mask if mask.startswith(PNG_DATA_URL_PREFIX) else f"{PNG_DATA_URL_PREFIX}{mask}"


def natural_size(data: bytes) -> tuple[int, int]:
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = ImageOps.exif_transpose(img).size
    except (UnidentifiedImageError, OSError) as e:
        raise DimensionUnavailable(f"Cannot read image size: {e}") from e
    if not width or not height:
        raise DimensionUnavailable("Image reports a zero pixel size")
    return width, height


def guess_mime_type(data: bytes) -> str:
    try:
        with Image.open(BytesIO(data)) as img:
            return Image.MIME.get(img.format or "", "image/png")
    except (UnidentifiedImageError, OSError):
        return "application/octet-stream"


@dataclass
class ImageIOService:
    """
    Upload validation and request-image shaping.

    - Size (MB) and minimum pixel dimension checks with readable messages
    - EXIF orientation baked in, so natural size matches what the browser shows
    - Longest-edge-capped JPEG copy for the segmentation request
    """
    max_file_size_mb: int = 20
    min_dimension: int = 16
    segmentation_max_edge: int = 1000
    segmentation_jpeg_quality: int = 70

    def read_upload(self, data: bytes) -> bytes:
        """
        Validate uploaded bytes and return them ready for the session.

        Images carrying an EXIF rotation are re-encoded upright as PNG;
        everything else is kept byte-for-byte.

        Raises:
            BadRequest: If the payload is empty, too large, not an image,
                or smaller than the minimum dimension
        """
        if not data:
            raise BadRequest("Image file is empty")

        size_mb = len(data) / (1024 * 1024)
        if size_mb > self.max_file_size_mb:
            raise BadRequest(
                f"Image file too large ({size_mb:.1f}MB). "
                f"Maximum allowed: {self.max_file_size_mb}MB."
            )
        logger.debug(f"Reading image upload: {size_mb:.2f}MB")

        try:
            img = Image.open(BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise BadRequest(
                f"Invalid or corrupted image file: {e}. "
                f"Please ensure the file is a valid image (JPEG, PNG, WebP)."
            )

        logger.debug(f"Upload: format={img.format}, mode={img.mode}, size={img.size}")

        orientation = img.getexif().get(ExifTags.Base.Orientation, 1)
        upright = ImageOps.exif_transpose(img) if orientation != 1 else img
        w, h = upright.size
        if w < self.min_dimension or h < self.min_dimension:
            raise BadRequest(
                f"Image too small ({w}x{h} pixels). "
                f"Minimum dimension: {self.min_dimension}px."
            )

        if upright is img:
            return data

        logger.info(f"Applied EXIF orientation, re-encoding upload as PNG ({w}x{h})")
        buffer = BytesIO()
        upright.save(buffer, format="PNG")
        return buffer.getvalue()

    def compress_for_segmentation(self, data: bytes) -> bytes:
        """JPEG copy with the longest edge capped, as sent to the segmentation model."""
        with Image.open(BytesIO(data)) as img:
            rgb = ImageOps.exif_transpose(img).convert("RGB")

        target = longest_edge_fit(rgb.width, rgb.height, self.segmentation_max_edge)
        if target != rgb.size:
            logger.debug(f"Resizing segmentation input {rgb.size} -> {target}")
            rgb = rgb.resize(target, Image.Resampling.LANCZOS)

        buffer = BytesIO()
        rgb.save(buffer, format="JPEG", quality=self.segmentation_jpeg_quality)
        return buffer.getvalue()
