"""Stand-in for the hosted model, used when USE_MOCK_DETECTION is set."""
import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .analysis import generate_id
from .constants import DetectionStatus
from .models import BoundingBox, DetectionResult, RawAPIResponse

logger = logging.getLogger(__name__)


def generate_mock_bounding_boxes(count: int) -> List[BoundingBox]:
    """Random boxes placed where the lungs sit on a frontal chest X-ray."""
    boxes = []
    for i in range(count):
        left_lung = random.random() > 0.5

        # Left lung 10-40%, right lung 55-85% from the left edge
        x_min, x_max = (10, 40) if left_lung else (55, 85)
        y_min, y_max = 10, 55

        x = x_min + random.random() * (x_max - x_min - 15)
        y = y_min + random.random() * (y_max - y_min - 15)
        width = 8 + random.random() * 12
        height = 8 + random.random() * 12
        confidence = 0.6 + random.random() * 0.38

        boxes.append(BoundingBox(
            id=i + 1,
            x=round(x, 1),
            y=round(y, 1),
            width=round(width, 1),
            height=round(height, 1),
            confidence=round(confidence, 2),
        ))
    return boxes


def calculate_average_confidence(boxes: List[BoundingBox]) -> float:
    if not boxes:
        return 0.0
    return round(sum(box.confidence for box in boxes) / len(boxes), 2)


async def analyze_image_mock(
    image_uri: str,
    simulate_delay: float = 2.5,
    detect: Optional[bool] = None,
) -> Tuple[DetectionResult, RawAPIResponse]:
    logger.info("Using mock detection")
    start = time.perf_counter()
    await asyncio.sleep(simulate_delay)

    if detect is None:
        detect = random.random() > 0.3

    boxes = generate_mock_bounding_boxes(1 + random.randint(0, 2)) if detect else []
    average_confidence = calculate_average_confidence(boxes)

    result = DetectionResult(
        id=generate_id(),
        image_uri=image_uri,
        timestamp=datetime.now(timezone.utc),
        status=DetectionStatus.DETECTED if detect else DetectionStatus.NOT_DETECTED,
        bounding_boxes=boxes,
        average_confidence=average_confidence,
        processing_time=int((time.perf_counter() - start) * 1000),
    )
    if detect:
        diagnosis = f"Pneumothorax detected ({average_confidence * 100:.1f}%) [mock]"
    else:
        diagnosis = "No pneumothorax detected [mock]"

    logger.info(f"Generated {len(boxes)} mock regions")
    return result, RawAPIResponse(original_image=image_uri, diagnosis=diagnosis)
