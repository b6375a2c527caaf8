import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .constants import (DEFAULT_GRADIO_BASE_URL, FILE_PATH_PREFIX, REQUEST_TIMEOUT, TARGET_SIZE,
                        UPLOAD_CONTENT_TYPE, UPLOAD_FILENAME)


class GradioConfig(BaseModel):
    """Connection settings for the hosted pneumothorax model."""

    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_GRADIO_BASE_URL
    target_size: int = TARGET_SIZE
    request_timeout: Optional[float] = REQUEST_TIMEOUT
    upload_filename: str = UPLOAD_FILENAME
    upload_content_type: str = UPLOAD_CONTENT_TYPE

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_env(cls) -> "GradioConfig":
        return cls(
            base_url=os.getenv("GRADIO_BASE_URL", DEFAULT_GRADIO_BASE_URL),
            target_size=int(os.getenv("TARGET_SIZE", str(TARGET_SIZE))),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", str(REQUEST_TIMEOUT))),
        )

    def file_url(self, path: str) -> str:
        """URL the Gradio app serves a server-side file from."""
        return f"{self.base_url}{FILE_PATH_PREFIX}{path}"
