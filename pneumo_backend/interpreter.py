"""Mapping raw Gradio output onto a detection outcome.

The model returns ``[original, mask, overlay, diagnosis]``. Image entries are
either plain strings (URL, data URL or server-side path) or Gradio FileData
objects; the diagnosis is free text. Anything missing becomes an empty value.
"""
import re
from typing import Any, List, Optional, Sequence, Tuple

from .config import GradioConfig
from .constants import NEGATIVE_MARKERS, POSITIVE_MARKERS, DetectionStatus
from .models import BoundingBox, RawAPIResponse

CONFIDENCE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*%")
# "no pneumothorax", "no-pneumothorax", "no\npneumothorax" are all negations
NEGATED_PATTERN = re.compile(r"\bno\W+pneumothorax")
DETECTED_PHRASE_PATTERN = re.compile(r"(\bno\W+)?pneumothorax detected")


def _element(data: Sequence[Any], index: int) -> Any:
    return data[index] if index < len(data) else None


def extract_image_url(element: Any, config: GradioConfig) -> str:
    if not element:
        return ""
    if isinstance(element, str):
        if element.startswith("http") or element.startswith("data:"):
            return element
        return config.file_url(element)
    if isinstance(element, dict):
        url = element.get("url")
        if url and isinstance(url, str):
            return url
        path = element.get("path")
        if path and isinstance(path, str):
            return config.file_url(path)
    return ""


def extract_diagnosis(element: Any) -> str:
    if isinstance(element, str):
        return element
    return str(element) if element else ""


def _has_detected_phrase(text: str) -> bool:
    return any(match.group(1) is None for match in DETECTED_PHRASE_PATTERN.finditer(text))


def _is_negated(text: str) -> bool:
    return bool(NEGATED_PATTERN.search(text)) or any(marker in text for marker in NEGATIVE_MARKERS)


def classify_diagnosis(diagnosis: str) -> str:
    text = diagnosis.lower()
    if _has_detected_phrase(text) or any(marker in text for marker in POSITIVE_MARKERS):
        return DetectionStatus.DETECTED
    if "pneumothorax" in text and not _is_negated(text):
        return DetectionStatus.DETECTED
    return DetectionStatus.NOT_DETECTED


def extract_confidence(diagnosis: str) -> float:
    match = CONFIDENCE_PATTERN.search(diagnosis)
    if match is None:
        return 0.0
    return float(match.group(1)) / 100


def interpret_output(
    data: Optional[Sequence[Any]], config: GradioConfig
) -> Tuple[str, float, List[BoundingBox], RawAPIResponse]:
    """
    Returns ``(status, confidence, bounding_boxes, api_response)``.

    The service only returns rendered images and text, so no region geometry
    is available and ``bounding_boxes`` is always empty.
    """
    data = data or []
    api_response = RawAPIResponse(
        original_image=extract_image_url(_element(data, 0), config),
        mask_image=extract_image_url(_element(data, 1), config),
        overlay_image=extract_image_url(_element(data, 2), config),
        diagnosis=extract_diagnosis(_element(data, 3)),
    )
    status = classify_diagnosis(api_response.diagnosis)
    confidence = extract_confidence(api_response.diagnosis)
    return status, confidence, [], api_response
