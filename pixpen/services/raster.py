from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

import numpy as np
from PIL import Image, ImageChops, UnidentifiedImageError

from pixpen.models.domain import PixelRect

Color = tuple[int, int, int, int]


class RasterError(ValueError):
    """Raised when a buffer cannot be decoded or allocated."""


@dataclass
class RasterBuffer:
    """
    Minimal 2D raster capability used by mask alignment, compositing and the overlay.

    Wraps a Pillow image. Mask buffers are single channel ("L"): 255 marks
    opaque/editable pixels, 0 transparent/protected ones. Overlay buffers are RGBA.
    """
    image: Image.Image

    @classmethod
    def allocate(cls, width: int, height: int, mode: str = "L", fill: int | Color = 0) -> "RasterBuffer":
        if width <= 0 or height <= 0:
            raise RasterError(f"Cannot allocate a {width}x{height} buffer")
        return cls(Image.new(mode, (width, height), fill))

    @classmethod
    def decode(cls, data: bytes) -> "RasterBuffer":
        try:
            img = Image.open(BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise RasterError(f"Unreadable image payload: {e}") from e
        return cls(img)

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def fill_solid(self, color: int | Color) -> "RasterBuffer":
        self.image.paste(color, (0, 0, self.width, self.height))
        return self

    def draw_scaled(self, src: "RasterBuffer", dest: PixelRect, smooth: bool = False) -> "RasterBuffer":
        """Resize src to dest's footprint and paste it at dest's offset, clipped to this buffer."""
        resample = Image.Resampling.BILINEAR if smooth else Image.Resampling.NEAREST
        piece = src.image
        if piece.mode != self.image.mode:
            piece = piece.convert(self.image.mode)
        if piece.size != (dest.width, dest.height):
            piece = piece.resize((dest.width, dest.height), resample)
        self.image.paste(piece, (dest.x, dest.y))
        return self

    def resized(self, width: int, height: int, smooth: bool = True) -> "RasterBuffer":
        resample = Image.Resampling.BILINEAR if smooth else Image.Resampling.NEAREST
        return RasterBuffer(self.image.resize((width, height), resample))

    def threshold_to_binary(self, threshold: int = 127) -> "RasterBuffer":
        """
        Snap every pixel to 0 or 255 by comparing its RGB mean against threshold.

        Returns a new single-channel buffer; alpha of the source is ignored,
        matching how the model's masks are painted (white on black).
        """
        rgb = np.asarray(self.image.convert("RGB"), dtype=np.float32)
        mean = rgb.mean(axis=2)
        binary = np.where(mean > threshold, 255, 0).astype(np.uint8)
        return RasterBuffer(Image.fromarray(binary))

    def blend_max(self, other: "RasterBuffer") -> "RasterBuffer":
        """Pixel-wise maximum ("lighten") of two same-size buffers."""
        if other.size != self.size:
            raise RasterError(f"Size mismatch: {other.size} vs {self.size}")
        src = other.image if other.image.mode == self.image.mode else other.image.convert(self.image.mode)
        self.image = ImageChops.lighter(self.image, src)
        return self

    def clip_to(self, mask: "RasterBuffer") -> "RasterBuffer":
        """Keep this RGBA buffer only where mask is opaque (destination-in)."""
        coverage = mask.image if mask.image.mode == "L" else mask.image.convert("L")
        if coverage.size != self.size:
            coverage = coverage.resize(self.size, Image.Resampling.NEAREST)
        alpha = np.asarray(self.image.getchannel("A"), dtype=np.uint16)
        clipped = (alpha * np.asarray(coverage, dtype=np.uint16) // 255).astype(np.uint8)
        self.image.putalpha(Image.fromarray(clipped))
        return self

    def composite_over(self, layer: "RasterBuffer") -> "RasterBuffer":
        self.image.alpha_composite(layer.image)
        return self

    def to_array(self) -> np.ndarray:
        return np.asarray(self.image)

    def encode(self, format: str = "PNG") -> bytes:
        buffer = BytesIO()
        self.image.save(buffer, format=format)
        return buffer.getvalue()
