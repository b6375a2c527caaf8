"""Turning an image handle (URI, path or data URL) into bytes for transport.

Acquisition and resizing happen outside the analysis core; these helpers only
give the core something it can upload or inline.
"""
import logging
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

import aiofiles
import httpx

from .constants import UPLOAD_CONTENT_TYPE
from .utils.helpers import decode_data_url, resize_image_to_square, to_data_url

logger = logging.getLogger(__name__)


def is_data_url(image_uri: str) -> bool:
    return image_uri.startswith("data:")


def is_remote_url(image_uri: str) -> bool:
    return image_uri.startswith(("http://", "https://"))


async def load_image_bytes(image_uri: str, client: Optional[httpx.AsyncClient] = None) -> Tuple[str, bytes]:
    """Return ``(mime_type, data)`` for any supported image handle."""
    if is_data_url(image_uri):
        return decode_data_url(image_uri)

    if is_remote_url(image_uri):
        if client is None:
            async with httpx.AsyncClient() as own_client:
                response = await own_client.get(image_uri)
        else:
            response = await client.get(image_uri)
        response.raise_for_status()
        mime_type = response.headers.get("content-type", UPLOAD_CONTENT_TYPE).split(";")[0]
        return mime_type, response.content

    path = image_uri
    if image_uri.startswith("file://"):
        path = unquote(urlparse(image_uri).path)
    async with aiofiles.open(path, "rb") as f:
        data = await f.read()
    return UPLOAD_CONTENT_TYPE, data


async def image_to_data_url(image_uri: str, client: Optional[httpx.AsyncClient] = None) -> str:
    if is_data_url(image_uri):
        return image_uri
    _, data = await load_image_bytes(image_uri, client)
    return to_data_url(data)


async def prepare_image(image_uri: str, size: int, client: Optional[httpx.AsyncClient] = None) -> str:
    """Resize to a ``size`` x ``size`` PNG and return it as a data URL."""
    logger.info(f"Resizing image to {size}x{size} before analysis")
    _, data = await load_image_bytes(image_uri, client)
    return to_data_url(resize_image_to_square(data, size), "image/png")
