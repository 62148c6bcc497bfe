from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from pixpen.core.logging import timed
from pixpen.services.gemini import GeminiClient, extract_image, image_part, text_part
from pixpen.services.image_io import guess_mime_type

EDIT_PROMPT = """You are an expert photo editor AI. Your task is to perform a natural, localized edit on the provided image based on the user's request.
User Request: "{prompt}"

You will receive two images:
1. The base photo to edit.
2. A binary mask where white regions indicate the editable area and black regions must remain unchanged.

Editing Guidelines:
- The edit must be realistic and blend seamlessly with the surrounding area.
- Only modify pixels covered by the white regions of the mask. The black regions must remain identical to the original.

Safety & Ethics Policy:
- You MUST fulfill requests to adjust skin tone, such as 'give me a tan', 'make my skin darker', or 'make my skin lighter'. These are considered standard photo enhancements.
- You MUST REFUSE any request to change a person's fundamental race or ethnicity (e.g., 'make me look Asian', 'change this person to be Black'). Do not perform these edits. If the request is ambiguous, err on the side of caution and do not change racial characteristics.

Output: Return ONLY the final edited image. Do not return text."""

FILTER_PROMPT = """You are an expert photo editor AI. Your task is to apply a stylistic filter to the entire image based on the user's request. Do not change the composition or content, only apply the style.
Filter Request: "{prompt}"

Safety & Ethics Policy:
- Filters may subtly shift colors, but you MUST ensure they do not alter a person's fundamental race or ethnicity.
- You MUST REFUSE any request that explicitly asks to change a person's race (e.g., 'apply a filter to make me look Chinese').

Output: Return ONLY the final filtered image. Do not return text."""


@dataclass
class EditService:
    client: GeminiClient
    model: str = "gemini-2.5-flash-image-preview"

    async def generate_edited_image(self, image: bytes, prompt: str, mask_png: bytes) -> tuple[str, bytes]:
        """
        Masked generative edit. White mask pixels are editable, black ones protected.

        Returns:
            (mime type, image bytes) of the edited image
        """
        logger.info("Starting generative edit with mask selection")
        with timed("Edit request"):
            payload = await self.client.generate_content(
                self.model,
                [
                    text_part(EDIT_PROMPT.format(prompt=prompt)),
                    image_part(image, guess_mime_type(image)),
                    image_part(mask_png, "image/png"),
                ],
                service="edit",
            )
        return extract_image(payload, "edit")

    async def generate_filtered_image(self, image: bytes, prompt: str) -> tuple[str, bytes]:
        logger.info(f"Starting filter generation: {prompt}")
        with timed("Filter request"):
            payload = await self.client.generate_content(
                self.model,
                [image_part(image, guess_mime_type(image)), text_part(FILTER_PROMPT.format(prompt=prompt))],
                service="filter",
            )
        return extract_image(payload, "filter")
