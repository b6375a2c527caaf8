from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DetectionStatusType = Literal["detected", "not_detected", "error"]


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    x: float = Field(ge=0, le=100)  # percentage of image width
    y: float = Field(ge=0, le=100)
    width: float = Field(ge=0, le=100)
    height: float = Field(ge=0, le=100)
    confidence: float = Field(ge=0, le=1)


class DetectionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    image_uri: str
    timestamp: datetime
    status: DetectionStatusType
    bounding_boxes: List[BoundingBox] = []
    average_confidence: float = 0.0
    processing_time: int  # milliseconds


class RawAPIResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    original_image: str = ""
    mask_image: str = ""
    overlay_image: str = ""
    diagnosis: str = ""


class AnalysisResponse(BaseModel):
    success: bool
    result: DetectionResult
    api_response: RawAPIResponse
    error: Optional[str] = None

class HistoryItem(BaseModel):
    id: str
    image_uri: str
    thumbnail_uri: str
    timestamp: str  # ISO date string
    status: DetectionStatusType
    detections_count: int
    average_confidence: float
    bounding_boxes: List[BoundingBox] = []
    api_response: Optional[RawAPIResponse] = None

    @classmethod
    def from_result(cls, result: DetectionResult, api_response: Optional[RawAPIResponse] = None,
                    thumbnail_uri: Optional[str] = None) -> "HistoryItem":
        """
        Derive a history entry from a result.

        Inline (``data:``) images are never stored at full size: the entry keeps
        ``thumbnail_uri`` in their place, or nothing when no thumbnail is given.
        """
        image_uri = result.image_uri
        if image_uri.startswith("data:"):
            image_uri = thumbnail_uri or ""
            if api_response is not None and api_response.original_image == result.image_uri:
                api_response = api_response.model_copy(update={"original_image": image_uri})
        return cls(
            id=result.id,
            image_uri=image_uri,
            thumbnail_uri=thumbnail_uri or image_uri,
            timestamp=result.timestamp.isoformat(),
            status=result.status,
            detections_count=len(result.bounding_boxes),
            average_confidence=result.average_confidence,
            bounding_boxes=result.bounding_boxes,
            api_response=api_response,
        )

class HealthResponse(BaseModel):
    status: str
    backend_status: str
    inference_status: dict
    response_time: float
    timestamp: str
