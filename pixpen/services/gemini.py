from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from pixpen.core.errors import EditRefused, TransportFailure


def text_part(text: str) -> dict[str, Any]:
    return {"text": text}


def image_part(data: bytes, mime_type: str) -> dict[str, Any]:
    return {"inlineData": {"mimeType": mime_type, "data": base64.b64encode(data).decode("utf-8")}}


def _first_candidate(payload: dict[str, Any]) -> dict[str, Any]:
    candidates = payload.get("candidates") or []
    return candidates[0] if candidates else {}


def _parts(payload: dict[str, Any]) -> list[dict[str, Any]]:
    return (_first_candidate(payload).get("content") or {}).get("parts") or []


def response_text(payload: dict[str, Any]) -> str:
    """Concatenated text parts of the first candidate."""
    return "".join(p.get("text", "") for p in _parts(payload) if isinstance(p.get("text"), str))


def extract_image(payload: dict[str, Any], context: str) -> tuple[str, bytes]:
    """
    Pull the generated image out of a generateContent reply.

    Returns:
        (mime type, image bytes)

    Raises:
        EditRefused: blocked prompt, non-STOP finish reason, or a text-only answer
    """
    feedback = payload.get("promptFeedback") or {}
    block_reason = feedback.get("blockReason")
    if block_reason:
        message = f"Request was blocked. Reason: {block_reason}. {feedback.get('blockReasonMessage') or ''}".strip()
        logger.error(message)
        raise EditRefused(context, str(block_reason), message)

    for part in _parts(payload):
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            try:
                data = base64.b64decode(inline["data"])
            except (binascii.Error, ValueError) as e:
                raise TransportFailure(context, f"Model returned undecodable image data: {e}") from e
            logger.info(f"Received image data ({mime_type}) for {context}")
            return mime_type, data

    finish_reason = _first_candidate(payload).get("finishReason")
    if finish_reason and finish_reason != "STOP":
        message = (
            f"Image generation for {context} stopped unexpectedly. Reason: {finish_reason}. "
            f"This often relates to safety settings."
        )
        logger.error(message)
        raise EditRefused(context, str(finish_reason), message)

    text = response_text(payload).strip()
    if text:
        message = f'The AI model did not return an image for the {context}. The model responded with text: "{text}"'
    else:
        message = (
            f"The AI model did not return an image for the {context}. "
            f"This can happen due to safety filters or if the request is too complex. "
            f"Please try rephrasing your prompt to be more direct."
        )
    logger.error(f"Model response did not contain an image part for {context}")
    raise EditRefused(context, "NO_IMAGE", message)


@dataclass
class GeminiClient:
    """
    Thin async client for the Gemini generateContent REST endpoint.

    No retries and no client-side cancellation; the timeout is the only
    transport policy applied here.
    """
    api_key: str
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout_seconds: float = 120.0
    transport: httpx.AsyncBaseTransport | None = None

    def __post_init__(self) -> None:
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_base.rstrip("/"),
                timeout=self.timeout_seconds,
                transport=self.transport,
            )

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def generate_content(self, model: str, parts: list[dict[str, Any]], service: str) -> dict[str, Any]:
        if not self.api_key:
            raise TransportFailure(service, "GEMINI_API_KEY is not configured")
        await self.start()
        assert self._client is not None

        logger.info(f"Sending {len(parts)} parts to {model} for {service}")
        try:
            response = await self._client.post(
                f"/models/{model}:generateContent",
                json={"contents": [{"parts": parts}]},
                headers={"x-goog-api-key": self.api_key},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"{service} request failed with HTTP {e.response.status_code}: {e.response.text[:500]}")
            raise TransportFailure(
                service, f"The {service} service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"{service} request error: {e}")
            raise TransportFailure(service, f"The {service} service is unreachable: {e}") from e
        except ValueError as e:
            raise TransportFailure(service, f"The {service} service returned a non-JSON body") from e

        if not isinstance(payload, dict):
            raise TransportFailure(service, f"The {service} service returned an unexpected payload")
        return payload
