from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from pixpen.core.errors import CompositeFailure
from pixpen.services.mask_compositor import MaskCompositor
from pixpen.tests.helpers import make_object, mask_png


def _pixels(png: bytes) -> np.ndarray:
    return np.asarray(Image.open(BytesIO(png)).convert("L"))


def test_single_mask_is_returned_untouched():
    mask = mask_png(50, 40, region=(0, 0, 10, 10))
    assert MaskCompositor().composite([mask]) is mask


def test_union_keeps_any_opaque_pixel():
    left = mask_png(100, 50, region=(0, 0, 30, 50))
    right = mask_png(100, 50, region=(70, 0, 100, 50))
    overlap = mask_png(100, 50, region=(20, 10, 40, 20))

    pixels = _pixels(MaskCompositor().composite([left, right, overlap]))

    assert pixels.shape == (50, 100)
    assert int((pixels == 255).sum()) == 30 * 50 + 30 * 50 + 10 * 10
    assert pixels[25, 50] == 0
    assert pixels[15, 35] == 255


def test_empty_list_fails():
    with pytest.raises(CompositeFailure):
        MaskCompositor().composite([])


def test_size_mismatch_fails():
    with pytest.raises(CompositeFailure):
        MaskCompositor().composite([mask_png(10, 10), mask_png(20, 10)])


def test_unreadable_mask_fails():
    with pytest.raises(CompositeFailure):
        MaskCompositor().composite([mask_png(10, 10), b"nope"])


def test_whole_image_mask_is_all_white():
    pixels = _pixels(MaskCompositor().whole_image(64, 32))
    assert pixels.shape == (32, 64)
    assert (pixels == 255).all()


def test_build_edit_mask_uses_selected_objects():
    a = make_object(0, (0, 0, 100, 100), mask_file=mask_png(20, 20, region=(0, 0, 5, 5)))
    b = make_object(1, (0, 0, 100, 100), mask_file=mask_png(20, 20, region=(10, 10, 20, 20)))

    pixels = _pixels(MaskCompositor().build_edit_mask([a, b], (20, 20)))

    assert int((pixels == 255).sum()) == 25 + 100


def test_build_edit_mask_without_selection_fails():
    with pytest.raises(CompositeFailure):
        MaskCompositor().build_edit_mask([], (20, 20))
    assert MaskCompositor().build_edit_mask([], (20, 20), whole_image=True)
