import logging
import os
import re
import time
from datetime import datetime
from typing import List, Optional

import httpx
from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import ORJSONResponse, Response
from PIL import UnidentifiedImageError
from starlette.middleware.base import BaseHTTPMiddleware

from .analysis import analyze_image
from .clients.gradio_client import GradioClient
from .config import GradioConfig
from .constants import MAX_FILE_SIZE as DEFAULT_MAX_FILE_SIZE
from .constants import DetectionStatus
from .history import HistoryStore
from .mock_detection import analyze_image_mock
from .models import AnalysisResponse, HealthResponse, HistoryItem
from .utils.helpers import (log_processing_step, log_request, make_thumbnail, to_data_url,
                            validate_image_file)

# Configure main logger
logger = logging.getLogger(__name__)

APP_NAME = os.getenv("APP_NAME", "Pneumothorax Detection Backend")
USE_MOCK_DETECTION = os.getenv("USE_MOCK_DETECTION", "false").lower() == "true"
RESIZE_BEFORE_UPLOAD = os.getenv("RESIZE_BEFORE_UPLOAD", "true").lower() == "true"
MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", str(DEFAULT_MAX_FILE_SIZE)))
HISTORY_PATH = os.getenv("HISTORY_PATH", "history.json")
HISTORY_MAX_ITEMS = int(os.getenv("HISTORY_MAX_ITEMS", "100"))
THUMBNAIL_SIZE = int(os.getenv("THUMBNAIL_SIZE", "128"))
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:8081,http://localhost:19006").split(",")

gradio_config = GradioConfig.from_env()
history_store = HistoryStore(HISTORY_PATH, max_items=HISTORY_MAX_ITEMS)

logger.info(f"Inference endpoint: {gradio_config.base_url}")
logger.info(f"Use mock detection: {USE_MOCK_DETECTION}")
logger.info(f"History file: {HISTORY_PATH}")


def is_cors_allowed(origin: str, allowed_patterns: List[str]) -> bool:
    """Check if an origin matches any of the allowed CORS patterns (supports wildcards)"""
    if not origin:
        return False

    for pattern in allowed_patterns:
        pattern = pattern.strip()
        if not pattern:
            continue
        if origin == pattern:
            return True
        if '*' in pattern:
            regex_pattern = re.escape(pattern).replace(r'\*', '.*')
            if re.fullmatch(regex_pattern, origin):
                return True

    logger.warning(f"CORS blocked for origin: {origin}")
    return False


CORS_PATTERNS = [o.strip() for o in CORS_ORIGINS if o.strip()]


class CustomCORSMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin")
        allowed = bool(origin) and is_cors_allowed(origin, CORS_PATTERNS)

        if request.method == "OPTIONS" and allowed:
            response = Response()
            response.headers["Access-Control-Max-Age"] = "86400"
        else:
            response = await call_next(request)

        if allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Methods"] = "*"
            response.headers["Access-Control-Allow-Headers"] = "*"
        return response


app = FastAPI(title=APP_NAME, default_response_class=ORJSONResponse)
app.add_middleware(CustomCORSMiddleware)


@app.get("/")
async def root():
    return {"name": APP_NAME, "status": "ok", "time": datetime.utcnow().isoformat()}


@app.get("/health", response_model=HealthResponse)
async def health():
    start = time.perf_counter()
    inference_status = {"ok": False, "latency_ms": None}
    try:
        async with httpx.AsyncClient(timeout=gradio_config.request_timeout) as client:
            r = await client.get(gradio_config.base_url)
            inference_status["ok"] = r.is_success
            inference_status["latency_ms"] = r.elapsed.total_seconds() * 1000 if r.elapsed else None
    except httpx.HTTPError as e:
        logger.warning(f"Inference endpoint unreachable: {e}")
    elapsed = time.perf_counter() - start
    return HealthResponse(
        status="ok",
        backend_status="ok",
        inference_status=inference_status,
        response_time=elapsed,
        timestamp=datetime.utcnow().isoformat()
    )


def build_thumbnail(contents: bytes) -> Optional[str]:
    try:
        return to_data_url(make_thumbnail(contents, THUMBNAIL_SIZE), "image/png")
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not build history thumbnail: {e}")
        return None


@app.post("/analyze", response_model=AnalysisResponse)
async def analyze(file: UploadFile = File(...)):
    logger.info(f"Analysis request received: {file.filename}")

    contents = await file.read()
    ok, msg = validate_image_file(file.filename or "", file.content_type or "", MAX_FILE_SIZE, len(contents))
    if not ok:
        logger.error(f"Image validation failed: {msg}")
        raise HTTPException(status_code=400, detail=msg)

    t0 = time.perf_counter()
    log_processing_step("Starting image processing pipeline", {
        "filename": file.filename,
        "content_type": file.content_type,
        "size_bytes": len(contents)
    })
    image_uri = to_data_url(contents, file.content_type)

    if USE_MOCK_DETECTION:
        result, api_response = await analyze_image_mock(image_uri)
    else:
        client = GradioClient(config=gradio_config)
        result, api_response = await analyze_image(image_uri, client=client, resize=RESIZE_BEFORE_UPLOAD)

    success = result.status != DetectionStatus.ERROR
    if success:
        await history_store.add(result, api_response, thumbnail_uri=build_thumbnail(contents))

    elapsed = time.perf_counter() - t0
    log_request("/analyze", elapsed, success, {
        "status": result.status,
        "confidence": result.average_confidence,
        "filename": file.filename,
    })
    return AnalysisResponse(
        success=success,
        result=result,
        api_response=api_response,
        error=None if success else api_response.diagnosis,
    )


@app.get("/history", response_model=List[HistoryItem])
async def list_history():
    return await history_store.load()


@app.get("/history/{item_id}", response_model=HistoryItem)
async def get_history_item(item_id: str):
    item = await history_store.get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="History item not found")
    return item


@app.delete("/history/{item_id}")
async def delete_history_item(item_id: str):
    if not await history_store.remove(item_id):
        raise HTTPException(status_code=404, detail="History item not found")
    return {"deleted": item_id}


@app.delete("/history")
async def clear_history():
    await history_store.clear()
    return {"cleared": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
