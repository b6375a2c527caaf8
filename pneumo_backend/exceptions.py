from typing import Optional


class PneumoAPIError(Exception):
    """Base class for failures talking to the inference service."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UploadFailure(PneumoAPIError):
    def __init__(self, status_code: int, body: str):
        super().__init__(f"Upload failed: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


class MalformedUploadResponse(PneumoAPIError):
    def __init__(self, body: str):
        super().__init__(f"Malformed upload response: {body[:200]}")
        self.body = body


class JobCreationFailure(PneumoAPIError):
    def __init__(self, status_code: Optional[int], body: str):
        if status_code is None:
            message = f"Call predict failed: {body}"
        else:
            message = f"Call predict failed: {status_code} - {body}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ResultFetchFailure(PneumoAPIError):
    def __init__(self, status_code: int):
        super().__init__(f"Result fetch failed: {status_code}")
        self.status_code = status_code


class NoValidResultData(PneumoAPIError):
    def __init__(self, message: str = "No valid result data found"):
        super().__init__(message)
