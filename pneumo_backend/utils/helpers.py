import base64
import io
import logging
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..constants import ALLOWED_IMAGE_TYPES, UPLOAD_CONTENT_TYPE

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ALLOWED_TYPES = set(ALLOWED_IMAGE_TYPES)


def validate_image_file(filename: str, content_type: str, max_size: int, size_bytes: int) -> Tuple[bool, str]:
    logger.info(f"Validating image file: {filename}, type: {content_type}, size: {size_bytes} bytes")

    if content_type not in ALLOWED_TYPES:
        logger.warning(f"Invalid image type: {content_type} for file {filename}")
        return False, "Invalid file type. Only PNG, JPG, JPEG, WEBP allowed."
    if size_bytes > max_size:
        logger.warning(f"Image file too large: {size_bytes} bytes (max: {max_size}) for file {filename}")
        return False, f"File too large. Max {max_size // (1024 * 1024)}MB allowed."
    if size_bytes == 0:
        logger.warning(f"Image file empty: {filename}")
        return False, "File is empty."
    if not filename:
        logger.warning("Image filename missing")
        return False, "Filename missing."

    logger.info(f"Image validation successful for {filename}")
    return True, ""


def convert_to_base64(file_content: bytes) -> str:
    return base64.b64encode(file_content).decode("utf-8")


def guess_image_mime_type(image_data: bytes, default: str = UPLOAD_CONTENT_TYPE) -> str:
    try:
        with Image.open(io.BytesIO(image_data)) as img:
            return img.get_format_mimetype() or default
    except (UnidentifiedImageError, OSError):
        return default


def to_data_url(image_data: bytes, mime_type: Optional[str] = None) -> str:
    mime_type = mime_type or guess_image_mime_type(image_data)
    return f"data:{mime_type};base64,{convert_to_base64(image_data)}"


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """Split a ``data:`` URL into its MIME type and decoded bytes."""
    header, _, payload = data_url.partition(",")
    if not header.startswith("data:") or not payload:
        raise ValueError("Invalid data URL")
    mime_type = header[5:].split(";")[0] or UPLOAD_CONTENT_TYPE
    if header.endswith(";base64"):
        return mime_type, base64.b64decode(payload)
    return mime_type, payload.encode("utf-8")


def resize_image_to_square(image_data: bytes, size: int) -> bytes:
    logger.info(f"Resizing image to {size}x{size}")

    with Image.open(io.BytesIO(image_data)) as img:
        w, h = img.size
        original_size = len(image_data)

        logger.info(f"Original image: {w}x{h}, format: {img.format}, size: {original_size} bytes")

        if img.mode not in ("RGB", "RGBA", "L"):
            img = img.convert("RGB")
        img = img.resize((size, size), Image.LANCZOS)
        out = io.BytesIO()
        img.save(out, format="PNG")
        resized_data = out.getvalue()

        logger.info(f"Image resized successfully. New size: {len(resized_data)} bytes")
        return resized_data


def make_thumbnail(image_data: bytes, max_size: int) -> bytes:
    """Shrink to fit a ``max_size`` box, keeping aspect ratio, as PNG."""
    with Image.open(io.BytesIO(image_data)) as img:
        if img.mode not in ("RGB", "RGBA", "L"):
            img = img.convert("RGB")
        img.thumbnail((max_size, max_size), Image.LANCZOS)
        out = io.BytesIO()
        img.save(out, format="PNG")
        return out.getvalue()


def log_request(endpoint: str, processing_time: float, success: bool, additional_info: Optional[dict] = None):
    """Enhanced logging for API requests"""
    status = "SUCCESS" if success else "ERROR"
    log_msg = f"[API] {endpoint} - {status} - {processing_time:.3f}s"

    if additional_info:
        info_str = ", ".join([f"{k}: {v}" for k, v in additional_info.items()])
        log_msg += f" - {info_str}"

    if success:
        logger.info(log_msg)
    else:
        logger.error(log_msg)


def log_processing_step(step: str, details: Optional[dict] = None):
    """Log individual processing steps"""
    log_msg = f"[PROCESSING] {step}"
    if details:
        info_str = ", ".join([f"{k}: {v}" for k, v in details.items()])
        log_msg += f" - {info_str}"
    logger.info(log_msg)
