import asyncio
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from pixpen.core.errors import AlignmentFailure, DimensionUnavailable
from pixpen.services.mask_aligner import MaskAligner
from pixpen.tests.helpers import make_object, mask_png, solid_png


def _pixels(png: bytes) -> np.ndarray:
    return np.asarray(Image.open(BytesIO(png)))


def test_aligned_mask_covers_exactly_the_box_footprint():
    original = solid_png(800, 600)
    obj = make_object(0, (100, 100, 500, 500), mask_file=mask_png(40, 40))

    [aligned] = asyncio.run(MaskAligner().align([obj], original))

    pixels = _pixels(aligned.mask_file)
    assert pixels.shape == (600, 800)
    assert set(np.unique(pixels)) <= {0, 255}
    assert int((pixels == 255).sum()) == 320 * 240
    assert pixels[60, 80] == 255
    assert pixels[299, 399] == 255
    assert pixels[59, 80] == 0
    assert pixels[60, 400] == 0
    assert aligned.mask.size == (800, 600)
    assert aligned.box == obj.box
    assert aligned.id == obj.id


def test_partial_mask_keeps_its_shape_after_scaling():
    original = solid_png(800, 600)
    left_half = mask_png(40, 40, region=(0, 0, 20, 40))
    obj = make_object(0, (100, 100, 500, 500), mask_file=left_half)

    [aligned] = asyncio.run(MaskAligner().align([obj], original))

    pixels = _pixels(aligned.mask_file)
    assert set(np.unique(pixels)) <= {0, 255}
    assert pixels[150, 100] == 255
    assert pixels[150, 380] == 0


def test_order_and_count_are_preserved():
    original = solid_png(400, 400)
    objects = [make_object(i, (i * 100, 0, i * 100 + 50, 50)) for i in range(4)]

    aligned = asyncio.run(MaskAligner().align(objects, original))

    assert [o.id for o in aligned] == ["obj_0", "obj_1", "obj_2", "obj_3"]


def test_empty_batch():
    assert asyncio.run(MaskAligner().align([], b"anything")) == []


def test_one_bad_object_fails_the_batch():
    original = solid_png(800, 600)
    good = make_object(0, (100, 100, 500, 500))
    off_canvas = make_object(1, (0, 999.6, 10, 1000))

    with pytest.raises(AlignmentFailure) as exc_info:
        asyncio.run(MaskAligner().align([good, off_canvas], original))
    assert exc_info.value.object_id == "obj_1"


def test_undecodable_mask_is_an_alignment_failure():
    obj = make_object(2, (100, 100, 500, 500), mask_file=b"not a png")
    with pytest.raises(AlignmentFailure):
        asyncio.run(MaskAligner().align([obj], solid_png(100, 100)))


def test_unreadable_original_has_no_dimensions():
    obj = make_object(0, (100, 100, 500, 500))
    with pytest.raises(DimensionUnavailable):
        asyncio.run(MaskAligner().align([obj], b"garbage"))
