import asyncio
import base64
from io import BytesIO

import httpx
import numpy as np
import pytest
from PIL import Image

from pixpen.core.errors import NoObjectsDetected, TransportFailure
from pixpen.services.image_io import ImageIOService
from pixpen.services.mask_aligner import MaskAligner
from pixpen.services.segmentation import SegmentationService
from pixpen.tests.helpers import FakeGemini, mask_data_url, segmentation_text, solid_png, text_reply

MODEL = "seg-model"


def _service(fake: FakeGemini) -> SegmentationService:
    return SegmentationService(
        client=fake.client(),
        image_io=ImageIOService(),
        aligner=MaskAligner(),
        model=MODEL,
    )


def _run(coro_factory):
    async def run(service):
        try:
            return await coro_factory(service)
        finally:
            await service.client.stop()

    return run


def test_segment_validates_and_numbers_survivors():
    entries = [
        {"box_2d": [100, 100, 500, 500], "mask": mask_data_url(), "label": "sofa"},
        {"box_2d": [300, 300, 300, 600], "mask": mask_data_url()},  # zero height
        {"box_2d": [10, 10, 50, 50], "mask": "!!!not base64!!!"},
        {"box_2d": [200, 200, 400, 400], "mask": mask_data_url().split(",", 1)[1], "label": "cushion"},
    ]
    fake = FakeGemini({MODEL: text_reply(segmentation_text(entries))})
    service = _service(fake)

    objects = asyncio.run(_run(lambda s: s.segment(solid_png(800, 600)))(service))

    assert [o.id for o in objects] == ["obj_0", "obj_1"]
    assert [o.ordinal for o in objects] == [0, 1]
    assert [o.display_number for o in objects] == [1, 2]
    assert [o.label for o in objects] == ["sofa", "cushion"]
    assert objects[1].box == (200.0, 200.0, 400.0, 400.0)
    # box-local masks before alignment
    assert objects[0].mask.size == (40, 40)


def test_request_carries_prompt_and_compressed_jpeg():
    entries = [{"box_2d": [100, 100, 500, 500], "mask": mask_data_url()}]
    fake = FakeGemini({MODEL: text_reply(segmentation_text(entries))})

    asyncio.run(_run(lambda s: s.segment(solid_png(2000, 1000)))(_service(fake)))

    [(model, body)] = fake.requests
    text, image = body["contents"][0]["parts"]
    assert model == MODEL
    assert "box_2d" in text["text"]
    assert image["inlineData"]["mimeType"] == "image/jpeg"
    sent = Image.open(BytesIO(base64.b64decode(image["inlineData"]["data"])))
    assert sent.size == (1000, 500)


def test_no_usable_entries_raises():
    fake = FakeGemini({MODEL: text_reply("Sorry, I see nothing to segment.")})
    with pytest.raises(NoObjectsDetected):
        asyncio.run(_run(lambda s: s.segment(solid_png(100, 100)))(_service(fake)))


def test_transport_errors_propagate():
    fake = FakeGemini({MODEL: lambda body: httpx.Response(503, text="overloaded")})
    with pytest.raises(TransportFailure) as exc_info:
        asyncio.run(_run(lambda s: s.segment(solid_png(100, 100)))(_service(fake)))
    assert exc_info.value.service == "segmentation"


def test_segment_and_align_returns_full_size_masks(two_object_entries):
    fake = FakeGemini({MODEL: text_reply(segmentation_text(two_object_entries))})

    objects = asyncio.run(_run(lambda s: s.segment_and_align(solid_png(800, 600)))(_service(fake)))

    assert len(objects) == 2
    for obj in objects:
        assert obj.mask.size == (800, 600)
    small = np.asarray(Image.open(BytesIO(objects[1].mask_file)))
    assert int((small == 255).sum()) == 160 * 120
