from __future__ import annotations

import base64
import json
from io import BytesIO
from typing import Callable

import httpx
import numpy as np
from PIL import Image

from pixpen.models.domain import SegmentObject
from pixpen.services.gemini import GeminiClient


def png_bytes(img: Image.Image) -> bytes:
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def solid_png(width: int, height: int, color=(120, 80, 40)) -> bytes:
    return png_bytes(Image.new("RGB", (width, height), color))


def mask_png(width: int, height: int, region: tuple[int, int, int, int] | None = None) -> bytes:
    """White-on-black mask; region is (left, top, right, bottom), None means all white."""
    arr = np.zeros((height, width), dtype=np.uint8)
    if region is None:
        arr[:, :] = 255
    else:
        left, top, right, bottom = region
        arr[top:bottom, left:right] = 255
    return png_bytes(Image.fromarray(arr))


def mask_data_url(width: int = 40, height: int = 40) -> str:
    return "data:image/png;base64," + base64.b64encode(mask_png(width, height)).decode()


def make_object(
    ordinal: int,
    box: tuple[float, float, float, float],
    mask: Image.Image | None = None,
    mask_file: bytes | None = None,
    label: str | None = None,
) -> SegmentObject:
    if mask_file is None:
        mask_file = mask_png(20, 20)
    return SegmentObject(
        id=f"obj_{ordinal}",
        ordinal=ordinal,
        box=box,
        mask=mask,
        mask_file=mask_file,
        label=label,
    )


def text_reply(text: str, finish_reason: str = "STOP") -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": finish_reason}]}


def image_reply(data: bytes, mime_type: str = "image/png") -> dict:
    encoded = base64.b64encode(data).decode()
    return {
        "candidates": [
            {
                "content": {"parts": [{"inlineData": {"mimeType": mime_type, "data": encoded}}]},
                "finishReason": "STOP",
            }
        ]
    }


def segmentation_text(entries: list[dict]) -> str:
    return "```json\n" + json.dumps(entries) + "\n```"


class FakeGemini:
    """Routes generateContent calls to canned replies per model and records requests."""

    def __init__(self, replies: dict[str, Callable[[dict], httpx.Response] | dict]):
        self.replies = replies
        self.requests: list[tuple[str, dict]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        model = request.url.path.rsplit("/", 1)[-1].split(":", 1)[0]
        body = json.loads(request.content)
        self.requests.append((model, body))
        reply = self.replies[model]
        if callable(reply):
            return reply(body)
        return httpx.Response(200, json=reply)

    def client(self) -> GeminiClient:
        return GeminiClient(api_key="test-key", transport=httpx.MockTransport(self.handler))
