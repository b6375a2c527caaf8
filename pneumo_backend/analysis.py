import logging
import random
import string
import time
from datetime import datetime, timezone
from typing import Optional, Tuple

from .clients.gradio_client import GradioClient
from .constants import GENERIC_ERROR_MESSAGE, DetectionStatus
from .imaging import prepare_image
from .interpreter import interpret_output
from .models import DetectionResult, RawAPIResponse
from .utils.helpers import log_processing_step

logger = logging.getLogger(__name__)


def generate_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"detection-{int(time.time() * 1000)}-{suffix}"


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _error_message(error: BaseException) -> str:
    message = getattr(error, "message", None) or str(error)
    return message or GENERIC_ERROR_MESSAGE


async def analyze_image(
    image_uri: str,
    client: Optional[GradioClient] = None,
    resize: bool = False,
) -> Tuple[DetectionResult, RawAPIResponse]:
    """
    Analyze one chest X-ray with the hosted model.

    Never raises: any failure comes back as a result with status ``error``
    and the failure message in ``RawAPIResponse.diagnosis``.
    """
    client = client or GradioClient()
    t0 = time.perf_counter()

    try:
        log_processing_step("Starting pneumothorax analysis", {"resize": resize})

        payload_uri = image_uri
        if resize:
            payload_uri = await prepare_image(image_uri, client.config.target_size)

        data = await client.predict(payload_uri)
        status, confidence, boxes, api_response = interpret_output(data, client.config)

        logger.info(f"Diagnosis: {api_response.diagnosis}")

        result = DetectionResult(
            id=generate_id(),
            image_uri=image_uri,
            timestamp=datetime.now(timezone.utc),
            status=status,
            bounding_boxes=boxes,
            average_confidence=confidence,
            processing_time=_elapsed_ms(t0),
        )
        return result, api_response

    except Exception as e:
        logger.exception(f"Analysis failed: {e}")

        result = DetectionResult(
            id=generate_id(),
            image_uri=image_uri,
            timestamp=datetime.now(timezone.utc),
            status=DetectionStatus.ERROR,
            bounding_boxes=[],
            average_confidence=0.0,
            processing_time=_elapsed_ms(t0),
        )
        return result, RawAPIResponse(diagnosis=f"Error: {_error_message(e)}")
