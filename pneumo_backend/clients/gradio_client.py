import json
import logging
from typing import Any, Iterator, List, Optional

import httpx

from ..config import GradioConfig
from ..constants import EVENT_DATA_PREFIX, FILE_DATA_TYPE, PREDICT_PATH, UPLOAD_FIELD_NAME, UPLOAD_PATH
from ..exceptions import (JobCreationFailure, MalformedUploadResponse, NoValidResultData,
                          ResultFetchFailure, UploadFailure)
from ..imaging import image_to_data_url, load_image_bytes

logger = logging.getLogger(__name__)


def _iter_event_payloads(text: str) -> Iterator[Any]:
    for line in text.split("\n"):
        if not line.startswith(EVENT_DATA_PREFIX):
            continue
        try:
            yield json.loads(line[len(EVENT_DATA_PREFIX):])
        except ValueError:
            continue


def _extract_output_data(payload: Any) -> Optional[List[Any]]:
    if isinstance(payload, dict):
        output = payload.get("output")
        if isinstance(output, dict) and isinstance(output.get("data"), list):
            return output["data"]
        return None
    if isinstance(payload, list):
        return payload
    return None


def parse_event_stream(text: str) -> List[Any]:
    """
    Pull the prediction output out of a Gradio ``/call/<fn>/<event_id>`` body.

    The body is a server-sent-event stream; only ``data: `` lines carry JSON.
    Lines that fail to parse are skipped. The first line holding either
    ``{"output": {"data": [...]}}`` or a bare list wins.
    """
    for payload in _iter_event_payloads(text):
        data = _extract_output_data(payload)
        if data is not None:
            return data
    raise NoValidResultData()


class GradioClient:
    def __init__(self, config: Optional[GradioConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or GradioConfig()
        self.transport = transport

    def _open(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.request_timeout,
            transport=self.transport,
        )

    async def predict(self, image_uri: str) -> List[Any]:
        """
        Run the model on one image.

        Uploads the image and references the uploaded file first; if any part
        of that path fails the image is sent inline as a base64 data URL
        instead. Errors from the inline attempt propagate.
        """
        async with self._open() as client:
            try:
                file_path = await self.upload_image(image_uri, client)
                return await self.predict_with_file(file_path, client)
            except Exception as e:
                logger.warning(f"Upload approach failed, trying base64: {e}")

            return await self.predict_with_base64(image_uri, client)

    async def upload_image(self, image_uri: str, client: httpx.AsyncClient) -> str:
        logger.info("Uploading image to Gradio...")
        _, image_data = await load_image_bytes(image_uri, client)

        files = {
            UPLOAD_FIELD_NAME: (self.config.upload_filename, image_data, self.config.upload_content_type)
        }
        response = await client.post(UPLOAD_PATH, files=files)

        if not response.is_success:
            logger.error(f"Upload error: {response.status_code} - {response.text}")
            raise UploadFailure(response.status_code, response.text)

        try:
            upload_result = response.json()
        except ValueError:
            raise MalformedUploadResponse(response.text)

        if not isinstance(upload_result, list) or not upload_result or not isinstance(upload_result[0], str):
            raise MalformedUploadResponse(response.text)

        logger.info(f"Upload result: {upload_result}")
        return upload_result[0]

    async def predict_with_file(self, file_path: str, client: httpx.AsyncClient) -> List[Any]:
        logger.info("Making prediction with uploaded file")
        payload = {"path": file_path, "meta": {"_type": FILE_DATA_TYPE}}
        return await self.call_predict(payload, client)

    async def predict_with_base64(self, image_uri: str, client: httpx.AsyncClient) -> List[Any]:
        logger.info("Trying base64 prediction...")
        data_url = await image_to_data_url(image_uri, client)
        return await self.call_predict(data_url, client)

    async def call_predict(self, value: Any, client: httpx.AsyncClient) -> List[Any]:
        """Create a predict job for ``value`` and read its result stream."""
        call_response = await client.post(PREDICT_PATH, json={"data": [value]})

        if not call_response.is_success:
            raise JobCreationFailure(call_response.status_code, call_response.text)

        call_result = call_response.json()
        event_id = call_result.get("event_id") if isinstance(call_result, dict) else None
        if not event_id:
            raise JobCreationFailure(None, f"no event_id in response {call_response.text[:200]}")
        logger.info(f"Event ID: {event_id}")

        result_response = await client.get(f"{PREDICT_PATH}/{event_id}")
        if not result_response.is_success:
            raise ResultFetchFailure(result_response.status_code)

        result_text = result_response.text
        logger.debug(f"Raw result: {result_text[:200]}")
        return parse_event_stream(result_text)
