from __future__ import annotations

import json
import re
from typing import Any

from loguru import logger

from pixpen.models.domain import Detection

JSON_FENCE = "```json"
FENCE = "```"
LABEL_WINDOW = 400

_SEGMENT_PATTERN = re.compile(
    r'"box_2d"\s*:\s*\[\s*(\d+(?:\.\d+)?(?:\s*,\s*\d+(?:\.\d+)?){3})\s*\]\s*,'
    r'[^}]*?"mask"\s*:\s*"(data:image/png;base64,[^"]+)"'
)
_LABEL_PATTERN = re.compile(r'"label"\s*:\s*"([^"]+)"')


def strip_code_fence(payload: str) -> str:
    """Return the interior of a ```json fence, else any ``` fence, else the trimmed text."""
    trimmed = payload.strip()
    for fence in (JSON_FENCE, FENCE):
        start = trimmed.find(fence)
        if start == -1:
            continue
        body = trimmed[start + len(fence):]
        end = body.find(FENCE)
        return (body[:end] if end != -1 else body).strip()
    return trimmed


def parse_segmentation_response(response_text: str | None) -> list[Detection]:
    """
    Turn the segmentation model's raw reply into candidate detections.

    Strict JSON is tried first on the (fence-stripped) payload. Only when
    that raises does the regex scan over the raw text run; an empty but
    well-formed JSON reply does not trigger the fallback. Entries lacking a
    4-element box or a mask are dropped individually.
    """
    if not response_text:
        return []

    payload = strip_code_fence(response_text)
    try:
        parsed = json.loads(payload)
    except (json.JSONDecodeError, ValueError):
        logger.debug("Structured parse failed, scanning raw response text")
        detections = _extract_with_regex(response_text)
        logger.info(f"Recovered {len(detections)} detections via pattern fallback")
        return detections

    entries = parsed if isinstance(parsed, list) else [parsed]
    detections = [d for d in (_entry_to_detection(e) for e in entries) if d is not None]
    dropped = len(entries) - len(detections)
    if dropped:
        logger.warning(f"Dropped {dropped} malformed segmentation entries")
    return detections


def _entry_to_detection(entry: Any) -> Detection | None:
    if not isinstance(entry, dict):
        return None
    box = entry.get("box_2d")
    mask = entry.get("mask")
    if not isinstance(box, list) or len(box) != 4:
        return None
    if not isinstance(mask, str) or not mask:
        return None
    label = entry.get("label")
    return Detection(box=box, mask=mask, label=label if isinstance(label, str) else None)


def _extract_with_regex(text: str) -> list[Detection]:
    results: list[Detection] = []
    for match in _SEGMENT_PATTERN.finditer(text):
        values = [float(v) for v in match.group(1).split(",")]
        if len(values) != 4:
            continue
        results.append(
            Detection(box=values, mask=match.group(2), label=_find_label(text, match))
        )
    return results


def _find_label(text: str, match: re.Match[str]) -> str | None:
    # Label may sit inside the matched span or shortly after the mask,
    # but never past the end of the current object.
    window = text[match.end(): match.end() + LABEL_WINDOW]
    closing = window.find("}")
    if closing != -1:
        window = window[:closing]
    for snippet in (match.group(0), window):
        found = _LABEL_PATTERN.search(snippet)
        if found:
            return found.group(1)
    return None
